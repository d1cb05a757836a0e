"""
分类树模块 - 物化路径计算

path 只记录祖先 id，以分隔符包裹：
    根节点        path = ""        depth = 0
    1 的子节点    path = "-1-"     depth = 1
    2 的子节点    path = "-1-2-"   depth = 2

移动节点时，后代集合只查询一次，所有后代的新 path / depth 在内存中批量算出，
再通过 NodeStore.update_many_paths 一次 flush 写回。
"""

import time
from typing import List, Optional, Tuple

from qbtree.config import TreeSettings
from qbtree.exceptions import CascadeTimeoutException
from qbtree.log import get_logger
from qbtree.orm.tree import split_path

from .node_store import NodeStore

logger = get_logger()


class PathMaterializer:
    """物化路径计算器

    使用示例:
        materializer = PathMaterializer(store, settings)

        materializer.child_path(parent)          # "-1-2-"
        deadline = materializer.start_deadline()
        materializer.apply_move(node, new_parent, descendants, deadline)
    """

    def __init__(self, store: NodeStore, settings: TreeSettings = None):
        self.store = store
        self.settings = settings or store.settings

    @property
    def separator(self) -> str:
        return self.settings.path_separator

    # ==================== 纯计算 ====================

    def child_path(self, parent) -> str:
        """parent 的子节点应有的 path，parent 为 None 时返回空串"""
        if parent is None:
            return ""
        sep = self.separator
        return f"{parent.path or sep}{parent.id}{sep}"

    def child_depth(self, parent) -> int:
        if parent is None:
            return 0
        return (parent.depth or 0) + 1

    def subtree_prefix(self, node) -> str:
        """node 所有后代的 path 公共前缀"""
        return self.child_path(node)

    def parse_path(self, path: Optional[str]) -> List[int]:
        return split_path(path, self.separator)

    def verify(self, node, parent) -> Tuple[str, int]:
        """返回 node 挂在 parent 下时应有的 (path, depth)"""
        return self.child_path(parent), self.child_depth(parent)

    def assign(self, node, parent):
        """为新建节点设置 path / depth"""
        node.path, node.depth = self.verify(node, parent)
        return node

    # ==================== 级联超时 ====================

    def start_deadline(self, timeout: float = None) -> float:
        """计算级联重写的截止时间（time.monotonic 基准）"""
        if timeout is None:
            timeout = self.settings.cascade_timeout
        return time.monotonic() + timeout

    def check_deadline(self, deadline: Optional[float], node_id=None):
        if deadline is not None and time.monotonic() >= deadline:
            logger.warning(f"级联路径重写超时 (node_id={node_id})")
            raise CascadeTimeoutException(node_id=node_id)

    # ==================== 移动 ====================

    def apply_move(self, node, new_parent, descendants: List, deadline: float = None) -> int:
        """重写被移动节点及其全部后代的 path / depth

        descendants 必须在修改 node 之前按旧 path 查询得到。

        Args:
            node: 被移动的节点
            new_parent: 新父节点，None 表示移动为根节点
            descendants: node 的全部后代（旧 path 下查询的结果）
            deadline: 截止时间，超过时抛出 CascadeTimeoutException

        Returns:
            写入的行数（含 node 自身）
        """
        old_prefix = self.subtree_prefix(node)
        new_path, new_depth = self.verify(node, new_parent)
        delta = new_depth - (node.depth or 0)

        node.path = new_path
        node.depth = new_depth
        new_prefix = self.subtree_prefix(node)

        batch = {}
        for descendant in descendants:
            self.check_deadline(deadline, node.id)
            path = descendant.path or ""
            if not path.startswith(old_prefix):
                # 不在旧子树下的行不改写
                logger.warning(f"后代 {descendant.id} 的路径 {path!r} 不在子树 {old_prefix!r} 下")
                continue
            batch[descendant.id] = (new_prefix + path[len(old_prefix):], descendant.depth + delta)

        changed = self.store.update_many_paths(batch, descendants)
        self.check_deadline(deadline, node.id)
        logger.debug(
            f"节点 {node.id} 路径 {old_prefix!r} -> {new_prefix!r}，级联 {changed} 个后代"
        )
        return changed + 1


__all__ = ["PathMaterializer"]
