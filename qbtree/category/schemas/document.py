"""
分类树模块 - 树文档 Schema

树文档是子树的 JSON 表示，用于导入导出。节点之间只通过 children 嵌套，
不携带 id / path / depth，导入时由引擎重新分配。
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class TreeDocumentNode(BaseModel):
    """树文档中的一个节点"""
    name: str = Field(..., min_length=1, max_length=200, description="节点名称")
    code: Optional[str] = Field(None, max_length=100, description="业务编码")
    type_code: str = Field(..., min_length=1, description="节点类型编码")
    description: Optional[str] = Field(None, description="描述")
    is_active: bool = Field(True, description="是否启用")
    is_visible: bool = Field(True, description="是否可见")
    children: List["TreeDocumentNode"] = Field(default_factory=list, description="子节点")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Algebra",
                "code": "alg",
                "type_code": "chapter",
                "children": [
                    {"name": "Linear Equations", "type_code": "section", "children": []}
                ]
            }
        }


TreeDocumentNode.model_rebuild()


class TreeDocument(BaseModel):
    """树文档

    使用示例:
        doc = TreeDocument.model_validate_json(raw_json)
        result = engine.documents.import_tree(doc, parent_id=None, actor="importer")
    """
    version: int = Field(1, ge=1, description="文档格式版本")
    roots: List[TreeDocumentNode] = Field(default_factory=list, description="根节点列表")


__all__ = ["TreeDocumentNode", "TreeDocument"]
