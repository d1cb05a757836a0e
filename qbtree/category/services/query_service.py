"""
分类树模块 - 树查询服务

只读服务：返回与 session 脱离的 TreeNodeView / TreeSnapshot，
即使发现 path / depth 不一致也不做任何修复（修复见 TreeMaintenanceService）。
"""

from typing import List, Optional

from qbtree.exceptions import Err
from qbtree.log import get_logger
from qbtree.orm.tree import build_child_index

from ..results import (
    NodeStatistics,
    TreeNodeView,
    TreeSnapshot,
    TreeStatistics,
    breadth_first,
)
from .base import TreeServiceBase
from .node_store import NodeStore

logger = get_logger()


class TreeQueryService(TreeServiceBase):
    """树查询服务

    使用示例:
        queries = engine.queries

        snapshot = queries.get_tree(root_id=1, max_depth=2)
        chain = queries.get_path_to_node(3)            # [Math, Algebra, Linear Equations]
        stats = queries.get_statistics(1)
        forest = queries.get_tree_statistics()
    """

    def __init__(self, store: NodeStore, settings=None):
        super().__init__(settings or store.settings)
        self.store = store

    @staticmethod
    def _views(nodes) -> List[TreeNodeView]:
        return [TreeNodeView.from_model(node) for node in nodes]

    def _require_node(self, node_id: int):
        node = self.store.get_by_id(node_id)
        if node is None:
            raise Err.node_not_found(node_id)
        return node

    # ==================== 节点查询 ====================

    def get_node(self, node_id: int) -> Optional[TreeNodeView]:
        node = self.store.get_by_id(node_id)
        return TreeNodeView.from_model(node) if node is not None else None

    def get_roots(self) -> List[TreeNodeView]:
        return self._views(self.store.get_roots())

    def get_children(self, parent_id: Optional[int]) -> List[TreeNodeView]:
        return self._views(self.store.get_children(parent_id))

    def get_siblings(self, node_id: int) -> List[TreeNodeView]:
        return self._views(self.store.get_siblings(node_id))

    def get_parent(self, node_id: int) -> Optional[TreeNodeView]:
        parent = self.store.get_parent(node_id)
        return TreeNodeView.from_model(parent) if parent is not None else None

    def get_ancestors(self, node_id: int) -> List[TreeNodeView]:
        """祖先节点，根 → 父"""
        return self._views(self.store.get_ancestors(node_id))

    def get_descendants(self, node_id: int, max_depth: Optional[int] = None) -> List[TreeNodeView]:
        return self._views(self.store.get_descendants(node_id, max_depth))

    def get_nodes_at_depth(self, depth: int) -> List[TreeNodeView]:
        return self._views(self.store.get_nodes_at_depth(depth))

    def count_descendants(self, node_id: int) -> int:
        return self.store.count_descendants(node_id)

    def search(self, term: str, max_results: int = None) -> List[TreeNodeView]:
        return self._views(self.store.search(term, max_results))

    def get_depth(self, node_id: int) -> int:
        return self._require_node(node_id).depth

    def get_path_to_node(self, node_id: int) -> List[TreeNodeView]:
        """从根到节点自身的链路，节点不存在时返回空列表"""
        node = self.store.get_by_id(node_id)
        if node is None:
            return []
        return self._views(self.store.get_ancestors(node_id) + [node])

    def find_by_name_path(self, names: List[str]) -> Optional[TreeNodeView]:
        """按根 → 叶的名称链查找节点

        使用示例:
            algebra = queries.find_by_name_path(["Math", "Algebra"])
        """
        names = [name.strip() for name in names if name and name.strip()]
        if not names:
            return None
        fold = str.casefold if self.settings.case_insensitive_names else (lambda s: s)
        node = None
        for name in names:
            children = self.store.get_children(node.id if node is not None else None)
            node = next((c for c in children if fold(c.name) == fold(name)), None)
            if node is None:
                return None
        return TreeNodeView.from_model(node)

    def get_content_ids(self, node_id: int, include_descendants: bool = True) -> List[int]:
        """节点（默认包含全部后代）关联的题目ID"""
        return self.store.get_linked_content_ids(node_id, include_descendants)

    # ==================== 子树 ====================

    def get_tree(self, root_id: Optional[int] = None, max_depth: Optional[int] = None) -> TreeSnapshot:
        """获取树快照

        一次查询取回全部行，在内存中按 parent_id 组装索引，不做逐层递归查询。

        Args:
            root_id: 子树根节点ID，为空时返回整个森林
            max_depth: 根以下最多展开的层数，为空表示不限制

        Raises:
            ResourceNotFoundException: root_id 不存在
        """
        if root_id is not None:
            root = self._require_node(root_id)
            rows = [root] + self.store.get_descendants(root_id, max_depth)
            root_ids = [root.id]
        else:
            rows = self.store.list_all(max_depth=max_depth)
            root_ids = [row.id for row in sorted(
                (r for r in rows if r.parent_id is None),
                key=lambda r: (r.order_index, r.id),
            )]

        index = build_child_index(rows, sort_key=lambda r: (r.order_index, r.id))
        reachable = list(breadth_first(index, root_ids))
        by_id = {row.id: row for row in rows}

        snapshot = TreeSnapshot(root_ids=root_ids)
        for node_id in reachable:
            snapshot.nodes[node_id] = TreeNodeView.from_model(by_id[node_id])
            if node_id in index:
                snapshot.children[node_id] = list(index[node_id])
        if len(reachable) < len(rows):
            logger.debug(f"get_tree 忽略 {len(rows) - len(reachable)} 个无法从根到达的节点")
        return snapshot

    # ==================== 统计 ====================

    def get_statistics(self, node_id: int) -> NodeStatistics:
        """单个节点的统计：子节点数、后代数、深度、是否叶子、关联题目数"""
        node = self._require_node(node_id)
        child_count = self.store.count_children(node.id)
        descendant_ids = [d.id for d in self.store.get_descendants(node.id)]
        return NodeStatistics(
            node_id=node.id,
            child_count=child_count,
            descendant_count=len(descendant_ids),
            depth=node.depth,
            is_leaf=child_count == 0,
            direct_content=self.store.count_content([node.id]),
            subtree_content=self.store.count_content([node.id] + descendant_ids),
        )

    def get_tree_statistics(self) -> TreeStatistics:
        """整片森林的统计"""
        total = self.store.count_all()
        total_content = self.store.count_content()
        return TreeStatistics(
            total=total,
            active=self.store.count_all(active_only=True),
            roots=self.store.count_roots(),
            max_depth=self.store.max_depth(),
            level_counts=self.store.count_per_level(),
            total_content=total_content,
            average_content=round(total_content / total, 2) if total else 0.0,
        )


__all__ = ["TreeQueryService"]
