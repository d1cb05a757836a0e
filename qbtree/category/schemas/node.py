"""
分类树模块 - 节点请求 Schema

批量操作的每一项先经过这些 Schema 校验，校验失败统一转换为 ValidationException。
"""

from typing import Optional

from pydantic import BaseModel, Field


class NodeCreate(BaseModel):
    """创建节点请求"""
    name: str = Field(..., min_length=1, max_length=200, description="节点名称")
    node_type_id: int = Field(..., description="节点类型ID")
    parent_id: Optional[int] = Field(None, description="父节点ID（为空表示根节点）")
    code: Optional[str] = Field(None, max_length=100, description="业务编码")
    description: Optional[str] = Field(None, description="描述")
    order_index: Optional[int] = Field(None, ge=1, description="同级序号，为空时追加到末尾")
    is_active: bool = Field(True, description="是否启用")
    is_visible: bool = Field(True, description="是否可见")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Algebra",
                "node_type_id": 1,
                "parent_id": 1,
                "code": "alg"
            }
        }


class NodeMove(BaseModel):
    """移动节点请求"""
    node_id: int = Field(..., description="节点ID")
    new_parent_id: Optional[int] = Field(None, description="新父节点ID（为空表示移动为根节点）")
    new_order_index: Optional[int] = Field(None, ge=1, description="新的同级序号")
    expected_version: Optional[int] = Field(None, ge=1, description="期望的版本号")

    class Config:
        json_schema_extra = {
            "example": {
                "node_id": 2,
                "new_parent_id": None,
                "new_order_index": 1
            }
        }


__all__ = ["NodeCreate", "NodeMove"]
