"""
分类树模块 - 查询与维护结果对象

查询服务返回与 session 脱离的只读视图，而不是 ORM 对象本身，
调用方拿到的数据不会因为后续的 flush 或 expire 而变化。
"""

from collections import deque
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from qbtree.orm.tree import build_tree_list


@dataclass(frozen=True)
class TreeNodeView:
    """树节点只读视图

    Attributes:
        id: 节点ID
        parent_id: 父节点ID
        node_type_id: 节点类型ID
        name / code / description: 显示信息
        path / depth / order_index: 结构字段
        is_active / is_visible: 生命周期标志
        content_count: 直接关联的题目数
        ver: 版本号，作为 expected_version 传回写操作
    """
    id: int
    parent_id: Optional[int]
    node_type_id: int
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    path: str = ""
    depth: int = 0
    order_index: int = 1
    is_active: bool = True
    is_visible: bool = True
    content_count: int = 0
    ver: int = 1
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, node) -> "TreeNodeView":
        return cls(
            id=node.id,
            parent_id=node.parent_id,
            node_type_id=node.node_type_id,
            name=node.name,
            code=node.code,
            description=node.description,
            path=node.path or "",
            depth=node.depth or 0,
            order_index=node.order_index,
            is_active=node.is_active,
            is_visible=node.is_visible,
            content_count=node.content_count or 0,
            ver=node.ver,
            created_by=node.created_by,
            updated_by=node.updated_by,
            created_at=node.created_at,
            updated_at=node.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TreeSnapshot:
    """树的扁平快照（arena 结构）

    nodes 保存 id → 视图，children 保存 id → 有序子节点 id 列表，
    root_ids 为本次快照的根。快照中不存在对象之间的相互引用。

    使用示例:
        snapshot = engine.queries.get_tree(root_id=1, max_depth=2)
        for view in snapshot.walk():
            print("  " * view.depth, view.name)

        nested = snapshot.to_nested()   # [{"id": 1, ..., "children": [...]}]
    """
    nodes: Dict[int, TreeNodeView] = field(default_factory=dict)
    children: Dict[int, List[int]] = field(default_factory=dict)
    root_ids: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self.nodes

    def get(self, node_id: int) -> Optional[TreeNodeView]:
        return self.nodes.get(node_id)

    def children_of(self, node_id: int) -> List[TreeNodeView]:
        return [self.nodes[cid] for cid in self.children.get(node_id, [])]

    def walk(self) -> Iterator[TreeNodeView]:
        """按先序遍历快照"""
        stack = list(reversed(self.root_ids))
        while stack:
            node_id = stack.pop()
            yield self.nodes[node_id]
            stack.extend(reversed(self.children.get(node_id, [])))

    def to_nested(self, children_field: str = "children") -> List[Dict[str, Any]]:
        """转换为嵌套字典列表"""
        order = {node_id: i for i, node_id in enumerate(v.id for v in self.walk())}
        return build_tree_list(
            [view.to_dict() for view in self.nodes.values()],
            children_field=children_field,
            root_ids=self.root_ids,
            sort_key=lambda n: order.get(n["id"], 0),
        )


@dataclass
class NodeStatistics:
    """单个节点的统计信息"""
    node_id: int
    child_count: int
    descendant_count: int
    depth: int
    is_leaf: bool
    direct_content: int = 0
    subtree_content: int = 0


@dataclass
class TreeStatistics:
    """整片森林的统计信息

    Attributes:
        total: 节点总数
        active: 启用的节点数
        roots: 根节点数
        max_depth: 最大深度（空树为 0）
        level_counts: 深度 → 节点数
        total_content: 关联题目数（按题目去重）
        average_content: 平均每个节点关联的题目数
    """
    total: int = 0
    active: int = 0
    roots: int = 0
    max_depth: int = 0
    level_counts: Dict[int, int] = field(default_factory=dict)
    total_content: int = 0
    average_content: float = 0.0


@dataclass
class TreeValidationResult:
    """完整性校验结果"""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    checked: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str):
        self.errors.append(message)

    def add_warning(self, message: str):
        self.warnings.append(message)


@dataclass
class ImportResult:
    """树文档导入结果"""
    created: int = 0
    reused: int = 0
    node_ids: List[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.reused


@dataclass
class TypeUsage:
    """节点类型的使用情况"""
    type_id: int
    total: int = 0
    active: int = 0

    @property
    def in_use(self) -> bool:
        return self.total > 0


def breadth_first(children: Dict[Any, List[Any]], roots: List[Any]) -> Iterator[Any]:
    """按层遍历 children 索引"""
    queue = deque(roots)
    while queue:
        node_id = queue.popleft()
        yield node_id
        queue.extend(children.get(node_id, []))


__all__ = [
    "TreeNodeView",
    "TreeSnapshot",
    "NodeStatistics",
    "TreeStatistics",
    "TreeValidationResult",
    "ImportResult",
    "TypeUsage",
    "breadth_first",
]
