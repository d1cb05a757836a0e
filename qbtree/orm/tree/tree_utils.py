"""树形结构工具函数

扁平节点列表与嵌套树之间的转换，以及父指针环检测。
均不使用递归，树的深度不受 Python 递归深度限制。

使用示例:
    from qbtree.orm.tree import build_child_index, build_tree_list

    flat_list = [
        {"id": 1, "parent_id": None, "name": "Math"},
        {"id": 2, "parent_id": 1, "name": "Algebra"},
        {"id": 3, "parent_id": 2, "name": "Linear Equations"},
    ]
    index = build_child_index(flat_list)   # {None: [1], 1: [2], 2: [3]}
    tree = build_tree_list(flat_list)   # [{"id": 1, ..., "children": [...]}]
"""

from typing import Any, Callable, Dict, Iterable, List, Optional


def _get(node: Any, field: str) -> Any:
    if isinstance(node, dict):
        return node.get(field)
    return getattr(node, field, None)


def build_child_index(
    nodes: Iterable[Any],
    id_field: str = "id",
    parent_field: str = "parent_id",
    sort_key: Optional[Callable[[Any], Any]] = None,
) -> Dict[Any, List[Any]]:
    """构建 parent_id → [子节点 id] 索引

    节点可以是字典或带属性的对象。输入顺序即同级顺序，
    传入 sort_key 时按 sort_key(node) 对同级重新排序。

    Returns:
        字典，键为父节点 id（根节点的键为 None），值为子节点 id 列表
    """
    nodes = list(nodes)
    if sort_key:
        nodes.sort(key=sort_key)

    index: Dict[Any, List[Any]] = {}
    for node in nodes:
        index.setdefault(_get(node, parent_field), []).append(_get(node, id_field))
    return index


def build_tree_list(
    nodes: List[Dict[str, Any]],
    id_field: str = "id",
    parent_field: str = "parent_id",
    children_field: str = "children",
    root_ids: Optional[List[Any]] = None,
    sort_key: Optional[Callable[[Dict], Any]] = None,
) -> List[Dict[str, Any]]:
    """将扁平列表构建为嵌套树结构

    Args:
        nodes: 扁平的节点列表，每个节点是一个字典
        id_field: ID 字段名
        parent_field: 父节点 ID 字段名
        children_field: 子节点列表字段名（输出中使用）
        root_ids: 指定作为根返回的节点 id；为空时父节点不在列表中的节点都视为根
        sort_key: 排序函数，用于对同级节点排序

    Returns:
        嵌套的树形结构列表（节点为输入字典的副本）
    """
    if not nodes:
        return []

    node_map: Dict[Any, Dict[str, Any]] = {}
    for node in nodes:
        node_copy = dict(node)
        node_copy[children_field] = []
        node_map[node_copy[id_field]] = node_copy

    ordered = list(node_map.values())
    if sort_key:
        ordered.sort(key=sort_key)

    if root_ids is not None:
        root_set = set(root_ids)
    else:
        root_set = {
            n[id_field] for n in ordered
            if n.get(parent_field) is None or n.get(parent_field) not in node_map
        }

    roots: List[Dict[str, Any]] = []
    for node in ordered:
        node_id = node[id_field]
        if node_id in root_set:
            roots.append(node)
            continue
        parent_id = node.get(parent_field)
        if parent_id in node_map:
            node_map[parent_id][children_field].append(node)

    if root_ids is not None:
        position = {rid: i for i, rid in enumerate(root_ids)}
        roots.sort(key=lambda n: position[n[id_field]])

    return roots


def detect_parent_cycles(parent_map: Dict[Any, Any]) -> List[List[Any]]:
    """检测 id → parent_id 映射中的环

    Args:
        parent_map: 节点 id 到父节点 id 的映射（根节点映射到 None）

    Returns:
        每个环的节点 id 列表；无环时返回空列表

    使用示例:
        detect_parent_cycles({1: None, 2: 3, 3: 2})   # [[2, 3]]
    """
    cycles: List[List[Any]] = []
    # 0 = 未访问，1 = 当前链上，2 = 已确认无环
    state: Dict[Any, int] = {}

    for start in parent_map:
        if state.get(start):
            continue
        chain: List[Any] = []
        current = start
        while current is not None and current in parent_map and not state.get(current):
            state[current] = 1
            chain.append(current)
            current = parent_map[current]

        if current is not None and state.get(current) == 1:
            cycle = chain[chain.index(current):]
            cycles.append(sorted(cycle))

        for node_id in chain:
            state[node_id] = 2

    return cycles


__all__ = [
    "build_child_index",
    "build_tree_list",
    "detect_parent_cycles",
]
