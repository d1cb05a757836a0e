"""树形结构 Mixin

提供基于物化路径（Materialized Path）的节点判断方法。

物化路径约定：
    - path 只记录祖先 id，以分隔符包裹，如 "-1-7-"
    - 根节点 path 为空串，depth 为 0
    - 节点的子树前缀为 (path 或 分隔符) + id + 分隔符

查询与写入由 category 服务层负责，除 is_leaf 外这里的方法只读取已加载的字段。
"""

from typing import List, Optional


def split_path(path: Optional[str], separator: str = "-") -> List[int]:
    """解析路径为祖先 id 列表

    >>> split_path("-1-7-")
    [1, 7]
    >>> split_path("")
    []
    """
    if not path:
        return []
    return [int(part) for part in path.strip(separator).split(separator) if part]


def join_path(ids: List[int], separator: str = "-") -> str:
    """将祖先 id 列表拼接为路径，空列表返回空串

    >>> join_path([1, 7])
    '-1-7-'
    """
    if not ids:
        return ""
    return separator + separator.join(str(i) for i in ids) + separator


class TreeMixin:
    """树形结构 Mixin

    字段要求（使用者需定义，或使用 TreeFieldsMixin）:
        - id: 整数主键
        - parent_id: 父节点ID
        - path: 祖先路径
        - depth: 深度

    可配置属性（子类可覆盖）:
        - PATH_SEPARATOR: 路径分隔符，默认 "-"

    使用示例:
        node = TreeNode.get(3)
        node.ancestor_ids        # [1, 2]
        node.get_path_ids()      # [1, 2, 3]
        node.subtree_prefix      # "-1-2-3-"
    """

    PATH_SEPARATOR: str = "-"

    @property
    def ancestor_ids(self) -> List[int]:
        """从根到父节点的 id 列表"""
        return split_path(self.path, self.PATH_SEPARATOR)

    @property
    def subtree_prefix(self) -> str:
        """子孙节点 path 的公共前缀"""
        sep = self.PATH_SEPARATOR
        return f"{self.path or sep}{self.id}{sep}"

    def get_path_ids(self) -> List[int]:
        """获取从根到当前节点的 ID 列表，如 [1, 2, 3]"""
        return self.ancestor_ids + [self.id]

    def is_root(self) -> bool:
        """判断是否为根节点"""
        return self.parent_id is None

    def is_leaf(self) -> bool:
        """判断是否为叶子节点（无未删除的子节点）"""
        return self.__class__.query.filter(
            self.__class__.parent_id == self.id
        ).count() == 0

    def is_ancestor_of(self, node) -> bool:
        """判断当前节点是否为指定节点的祖先"""
        if node.id == self.id:
            return False
        return self.id in split_path(node.path, self.PATH_SEPARATOR)

    def is_descendant_of(self, node) -> bool:
        """判断当前节点是否为指定节点的子孙"""
        return node.is_ancestor_of(self)


__all__ = ["TreeMixin", "split_path", "join_path"]
