"""
分类树模块 - 树文档导入导出

导出：get_tree 快照 → TreeDocument（JSON）
导入：按文档逐层匹配已有子节点（有编码按编码，否则按名称忽略大小写），
缺少的节点通过 TreeMutationService 创建。重复导入同一文档不会产生重复节点。
"""

from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from qbtree.exceptions import Err
from qbtree.log import get_logger

from ..results import ImportResult
from ..schemas import TreeDocument, TreeDocumentNode
from .base import TreeServiceBase
from .mutation_service import TreeMutationService
from .query_service import TreeQueryService
from .type_registry import TypeRegistry

logger = get_logger()


class TreeDocumentService(TreeServiceBase):
    """树文档服务

    使用示例:
        raw = engine.documents.export_json(root_id=1)

        result = engine.documents.import_tree(raw, parent_id=None, actor="importer")
        print(result.created, result.reused)
    """

    def __init__(
        self,
        queries: TreeQueryService,
        mutations: TreeMutationService,
        types: TypeRegistry,
        settings=None,
    ):
        super().__init__(settings or mutations.settings)
        self.queries = queries
        self.mutations = mutations
        self.types = types

    # ==================== 导出 ====================

    def export_tree(self, root_id: Optional[int] = None) -> TreeDocument:
        """导出子树（root_id 为空时导出整个森林）"""
        snapshot = self.queries.get_tree(root_id)
        type_codes = {t.id: t.code for t in self.types.list_types()}

        document = TreeDocument()
        built: Dict[int, TreeDocumentNode] = {}
        for view in snapshot.walk():
            type_code = type_codes.get(view.node_type_id)
            if type_code is None:
                raise Err.type_not_found(view.node_type_id)
            doc_node = TreeDocumentNode(
                name=view.name,
                code=view.code,
                type_code=type_code,
                description=view.description,
                is_active=view.is_active,
                is_visible=view.is_visible,
            )
            built[view.id] = doc_node
            if view.id in snapshot.root_ids:
                document.roots.append(doc_node)
            else:
                built[view.parent_id].children.append(doc_node)
        return document

    def export_json(self, root_id: Optional[int] = None) -> str:
        return self.export_tree(root_id).model_dump_json(indent=2)

    # ==================== 导入 ====================

    @staticmethod
    def _parse(document: Union[TreeDocument, Dict[str, Any], str]) -> TreeDocument:
        if isinstance(document, TreeDocument):
            return document
        try:
            if isinstance(document, str):
                return TreeDocument.model_validate_json(document)
            return TreeDocument.model_validate(document)
        except PydanticValidationError as e:
            details = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise Err.invalid("树文档格式错误", details=details) from e

    def _match(self, parent_id: Optional[int], doc_node: TreeDocumentNode):
        children = self.mutations.store.get_children(parent_id)
        if doc_node.code:
            return next((c for c in children if c.code == doc_node.code), None)
        return next(
            (c for c in children if self.mutations.names_match(c.name, doc_node.name)),
            None,
        )

    def import_tree(
        self,
        document: Union[TreeDocument, Dict[str, Any], str],
        parent_id: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> ImportResult:
        """导入树文档（幂等）

        Args:
            document: TreeDocument、等价字典或 JSON 字符串
            parent_id: 挂载点，为空时文档根节点成为森林的根
            actor: 操作人

        Returns:
            ImportResult(created, reused, node_ids)，node_ids 按先序排列

        Raises:
            ValidationException: 文档格式错误
            ResourceNotFoundException: 挂载点或 type_code 不存在
        """
        document = self._parse(document)
        result = ImportResult()
        type_ids: Dict[str, int] = {}

        with self.atomic("导入树文档"):
            self.mutations.require_parent(parent_id)

            stack = [(parent_id, doc_node) for doc_node in reversed(document.roots)]
            while stack:
                target_parent_id, doc_node = stack.pop()

                node = self._match(target_parent_id, doc_node)
                if node is not None:
                    result.reused += 1
                else:
                    if doc_node.type_code not in type_ids:
                        node_type = self.types.get_type_by_code(doc_node.type_code)
                        if node_type is None:
                            raise Err.type_not_found(doc_node.type_code)
                        type_ids[doc_node.type_code] = node_type.id
                    node = self.mutations.create(
                        name=doc_node.name,
                        node_type_id=type_ids[doc_node.type_code],
                        parent_id=target_parent_id,
                        code=doc_node.code,
                        description=doc_node.description,
                        is_active=doc_node.is_active,
                        is_visible=doc_node.is_visible,
                        actor=actor,
                    )
                    result.created += 1

                result.node_ids.append(node.id)
                stack.extend((node.id, child) for child in reversed(doc_node.children))

        logger.info(
            f"导入树文档: parent_id={parent_id}, 新建 {result.created} 个, "
            f"复用 {result.reused} 个, actor={actor}"
        )
        return result


__all__ = ["TreeDocumentService"]
