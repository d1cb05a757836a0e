"""
分类树模块 - 节点存储

TreeNode 行的持久化边界。所有读取默认排除已软删除的行；
找不到数据时返回 None 或空列表，只有存储本身不可用时才抛出异常。

祖先与后代查询基于 path 前缀匹配，不使用递归连接。
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import distinct, func, or_

from qbtree.exceptions import store_guard
from qbtree.log import get_logger
from qbtree.orm.tree import split_path

from .base import TreeServiceBase

logger = get_logger()


class _AnyParent:
    def __repr__(self):
        return "ANY_PARENT"


# get_by_code 不限定父节点时的哨兵值（None 表示根节点集合）
ANY_PARENT = _AnyParent()


class NodeStore(TreeServiceBase):
    """节点存储

    使用示例:
        store = NodeStore()

        node = store.get_by_id(3)
        ancestors = store.get_ancestors(3)           # 根 → 父
        subtree = store.get_descendants(1, max_depth=2)
        store.update_many_paths({3: ("-2-", 1)})
    """

    # ==================== 内部工具 ====================

    def _parent_filter(self, parent_id: Optional[int]):
        if parent_id is None:
            return self.node_model.parent_id.is_(None)
        return self.node_model.parent_id == parent_id

    def _sibling_order(self):
        return (self.node_model.order_index, self.node_model.id)

    def _tree_order(self):
        return (self.node_model.depth, self.node_model.order_index, self.node_model.id)

    def _subtree_filter(self, node):
        return self.node_model.path.startswith(node.subtree_prefix, autoescape=True)

    # ==================== 单节点查询 ====================

    @store_guard
    def get_by_id(self, node_id: int):
        """根据ID获取节点，不存在返回 None"""
        if node_id is None:
            return None
        return self.node_model.query.filter(self.node_model.id == node_id).first()

    @store_guard
    def get_by_code(self, code: str, parent_id=ANY_PARENT):
        """根据业务编码获取节点

        Args:
            code: 业务编码
            parent_id: 限定父节点；None 表示只在根节点中查找，不传表示全树查找
        """
        if not code:
            return None
        query = self.node_model.query.filter(self.node_model.code == code)
        if parent_id is not ANY_PARENT:
            query = query.filter(self._parent_filter(parent_id))
        return query.order_by(*self._tree_order()).first()

    @store_guard
    def get_parent(self, node_id: int):
        node = self.get_by_id(node_id)
        if node is None or node.parent_id is None:
            return None
        return self.get_by_id(node.parent_id)

    # ==================== 层级查询 ====================

    @store_guard
    def get_roots(self) -> List:
        """获取所有根节点（按 order_index 排序）"""
        return self.get_children(None)

    @store_guard
    def get_children(self, parent_id: Optional[int]) -> List:
        """获取直接子节点（按 order_index 排序），parent_id 为 None 时返回根节点"""
        return self.node_model.query.filter(
            self._parent_filter(parent_id)
        ).order_by(*self._sibling_order()).all()

    @store_guard
    def get_siblings(self, node_id: int) -> List:
        """获取兄弟节点（不含自身）"""
        node = self.get_by_id(node_id)
        if node is None:
            return []
        return [n for n in self.get_children(node.parent_id) if n.id != node.id]

    @store_guard
    def get_ancestors(self, node_id: int) -> List:
        """获取祖先节点，顺序为根 → 父

        祖先 id 直接从 path 解析，一次 IN 查询取回。
        """
        node = self.get_by_id(node_id)
        if node is None:
            return []
        ids = split_path(node.path, node.PATH_SEPARATOR)
        if not ids:
            return []
        rows = self.node_model.query.filter(self.node_model.id.in_(ids)).all()
        by_id = {row.id: row for row in rows}
        return [by_id[i] for i in ids if i in by_id]

    @store_guard
    def get_descendants(self, node_id: int, max_depth: Optional[int] = None) -> List:
        """获取所有后代节点（不含自身）

        Args:
            node_id: 节点ID
            max_depth: 相对深度上限，1 表示只取子节点，None 表示不限制

        Returns:
            按 depth、order_index 排序的后代列表
        """
        node = self.get_by_id(node_id)
        if node is None:
            return []
        query = self.node_model.query.filter(self._subtree_filter(node))
        if max_depth is not None:
            query = query.filter(self.node_model.depth <= node.depth + max_depth)
        return query.order_by(*self._tree_order()).all()

    @store_guard
    def list_all(self, include_deleted: bool = False, max_depth: Optional[int] = None) -> List:
        """获取全部节点（按 depth、order_index 排序）"""
        query = self.node_model.query
        if include_deleted:
            query = query.execution_options(include_deleted=True)
        if max_depth is not None:
            query = query.filter(self.node_model.depth <= max_depth)
        return query.order_by(*self._tree_order()).all()

    @store_guard
    def get_nodes_at_depth(self, depth: int) -> List:
        """获取某一层的全部节点（按 path、order_index 排序，同一父节点的子节点相邻）"""
        return self.node_model.query.filter(
            self.node_model.depth == depth
        ).order_by(self.node_model.path, *self._sibling_order()).all()

    @store_guard
    def get_by_type(self, node_type_id: int) -> List:
        return self.node_model.query.filter(
            self.node_model.node_type_id == node_type_id
        ).order_by(*self._tree_order()).all()

    @store_guard
    def search(self, term: str, max_results: int = None) -> List:
        """按名称、编码、描述模糊搜索（忽略大小写）

        Args:
            term: 搜索词，% 和 _ 按字面匹配
            max_results: 返回条数上限，默认取 TreeSettings.search_max_results
        """
        term = (term or "").strip().lower()
        if not term:
            return []
        limit = max_results or self.settings.search_max_results
        model = self.node_model
        return model.query.filter(or_(
            func.lower(model.name).contains(term, autoescape=True),
            func.lower(model.code).contains(term, autoescape=True),
            func.lower(model.description).contains(term, autoescape=True),
        )).order_by(*self._tree_order()).limit(limit).all()

    # ==================== 写入 ====================

    @store_guard
    def create(self, node):
        """持久化新节点并 flush 以获取主键"""
        self.session.add(node)
        self.session.flush()
        return node

    @store_guard
    def update(self, node):
        """flush 节点的内容变更（版本号由 ORM 自动递增）"""
        self.session.add(node)
        self.session.flush()
        return node

    @store_guard
    def soft_delete(self, nodes: Sequence, actor: Optional[str] = None) -> int:
        """软删除节点，同时软删除它们的题目关联

        Returns:
            删除的节点数
        """
        if not nodes:
            return 0
        now = datetime.now()
        for node in nodes:
            node.touch(actor)
            node.soft_delete(now)
        ids = [node.id for node in nodes]
        self.link_model.query.filter(
            self.link_model.node_id.in_(ids)
        ).update({"deleted_at": now}, synchronize_session=False)
        self.session.flush()
        logger.debug(f"软删除节点 {len(ids)} 个: {ids[:20]}")
        return len(ids)

    @store_guard
    def shift_order_indexes(
        self,
        parent_id: Optional[int],
        from_index: int,
        exclude_id: Optional[int] = None
    ) -> int:
        """将 order_index >= from_index 的兄弟节点依次后移一位

        Returns:
            移动的节点数
        """
        query = self.node_model.query.filter(
            self._parent_filter(parent_id),
            self.node_model.order_index >= from_index,
        )
        if exclude_id is not None:
            query = query.filter(self.node_model.id != exclude_id)
        siblings = query.order_by(self.node_model.order_index.desc()).all()
        for sibling in siblings:
            sibling.order_index += 1
        if siblings:
            self.session.flush()
        return len(siblings)

    @store_guard
    def update_many_paths(
        self,
        batch: Dict[int, Tuple[str, int]],
        nodes: Iterable = None
    ) -> int:
        """批量写入 path / depth

        Args:
            batch: {node_id: (path, depth)}
            nodes: 已加载的节点对象，缺少的会一次性补查

        Returns:
            实际变更的行数
        """
        if not batch:
            return 0
        loaded = {node.id: node for node in (nodes or [])}
        missing = [node_id for node_id in batch if node_id not in loaded]
        if missing:
            for node in self.node_model.query.filter(self.node_model.id.in_(missing)).all():
                loaded[node.id] = node

        changed = 0
        for node_id, (path, depth) in batch.items():
            node = loaded.get(node_id)
            if node is None:
                continue
            if node.path != path or node.depth != depth:
                node.path = path
                node.depth = depth
                changed += 1
        self.session.flush()
        return changed

    # ==================== 计数 ====================

    @store_guard
    def has_children(self, node_id: int) -> bool:
        return self.session.query(self.node_model.id).filter(
            self.node_model.parent_id == node_id
        ).first() is not None

    @store_guard
    def count_children(self, node_id: Optional[int]) -> int:
        return self.node_model.query.filter(self._parent_filter(node_id)).count()

    @store_guard
    def count_descendants(self, node_id: int) -> int:
        node = self.get_by_id(node_id)
        if node is None:
            return 0
        return self.node_model.query.filter(self._subtree_filter(node)).count()

    @store_guard
    def max_order_index_under(self, parent_id: Optional[int]) -> int:
        """父节点下最大的 order_index，没有子节点时返回 0"""
        value = self.session.query(func.max(self.node_model.order_index)).filter(
            self.node_model.deleted_at.is_(None),
            self._parent_filter(parent_id),
        ).scalar()
        return value or 0

    @store_guard
    def order_index_taken(
        self,
        parent_id: Optional[int],
        order_index: int,
        exclude_id: Optional[int] = None
    ) -> bool:
        """同级中是否已有节点占用该 order_index"""
        query = self.session.query(self.node_model.id).filter(
            self._parent_filter(parent_id),
            self.node_model.order_index == order_index,
        )
        if exclude_id is not None:
            query = query.filter(self.node_model.id != exclude_id)
        return query.first() is not None

    @store_guard
    def count_by_type(self, node_type_id: int, active_only: bool = False) -> int:
        query = self.node_model.query.filter(self.node_model.node_type_id == node_type_id)
        if active_only:
            query = query.filter(self.node_model.is_active.is_(True))
        return query.count()

    @store_guard
    def count_all(self, active_only: bool = False) -> int:
        query = self.node_model.query
        if active_only:
            query = query.filter(self.node_model.is_active.is_(True))
        return query.count()

    @store_guard
    def count_roots(self) -> int:
        return self.count_children(None)

    @store_guard
    def max_depth(self) -> int:
        """已有节点的最大深度，空树返回 0"""
        value = self.session.query(func.max(self.node_model.depth)).filter(
            self.node_model.deleted_at.is_(None)
        ).scalar()
        return value or 0

    @store_guard
    def count_per_level(self) -> Dict[int, int]:
        """每个深度的节点数 {depth: count}"""
        rows = self.session.query(
            self.node_model.depth, func.count(self.node_model.id)
        ).filter(
            self.node_model.deleted_at.is_(None)
        ).group_by(self.node_model.depth).order_by(self.node_model.depth).all()
        return {depth: count for depth, count in rows}

    # ==================== 题目关联 ====================

    @store_guard
    def link_content(self, node, content_id: int, is_primary: bool = False):
        """关联题目到节点（已关联时直接返回已有关联）"""
        link = self.link_model.query.filter(
            self.link_model.node_id == node.id,
            self.link_model.content_id == content_id,
        ).first()
        if link is not None:
            if is_primary and not link.is_primary:
                link.is_primary = True
                self.session.flush()
            return link

        link = self.link_model(node_id=node.id, content_id=content_id, is_primary=is_primary)
        self.session.add(link)
        node.content_count = (node.content_count or 0) + 1
        self.session.flush()
        return link

    @store_guard
    def unlink_content(self, node, content_id: int) -> bool:
        """取消关联，未关联时返回 False"""
        link = self.link_model.query.filter(
            self.link_model.node_id == node.id,
            self.link_model.content_id == content_id,
        ).first()
        if link is None:
            return False
        link.soft_delete()
        node.content_count = max((node.content_count or 0) - 1, 0)
        self.session.flush()
        return True

    @store_guard
    def count_content(self, node_ids: Optional[Iterable[int]] = None) -> int:
        """统计关联的题目数（按题目去重）

        Args:
            node_ids: 限定的节点ID，None 表示所有未删除的关联
        """
        query = self.session.query(func.count(distinct(self.link_model.content_id))).filter(
            self.link_model.deleted_at.is_(None)
        )
        if node_ids is not None:
            node_ids = list(node_ids)
            if not node_ids:
                return 0
            query = query.filter(self.link_model.node_id.in_(node_ids))
        return query.scalar() or 0

    @store_guard
    def get_linked_content_ids(self, node_id: int, include_descendants: bool = False) -> List[int]:
        """获取节点（可包含后代）关联的题目ID，按ID升序去重"""
        node = self.get_by_id(node_id)
        if node is None:
            return []
        node_ids = [node.id]
        if include_descendants:
            node_ids.extend(n.id for n in self.get_descendants(node.id))
        rows = self.session.query(distinct(self.link_model.content_id)).filter(
            self.link_model.deleted_at.is_(None),
            self.link_model.node_id.in_(node_ids),
        ).order_by(self.link_model.content_id).all()
        return [row[0] for row in rows]

    @store_guard
    def content_count_by_node(self) -> Dict[int, int]:
        """每个节点未删除的关联数 {node_id: count}"""
        rows = self.session.query(
            self.link_model.node_id, func.count(self.link_model.id)
        ).filter(
            self.link_model.deleted_at.is_(None)
        ).group_by(self.link_model.node_id).all()
        return {node_id: count for node_id, count in rows}


__all__ = ["NodeStore", "ANY_PARENT"]
