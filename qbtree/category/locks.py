"""
分类树模块 - 同级节点锁

同一父节点下的 create / move / reorder 需要串行执行，否则可能产生重复的 order_index。
不同父节点下的操作互不影响，可以并行。

锁只在单进程内有效；多实例部署时需要依赖数据库事务隔离。
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Tuple

from qbtree.exceptions import Err, ErrorCode
from qbtree.log import get_logger

logger = get_logger()

LockKey = Tuple[int, int]

# 根节点集合（parent_id 为空）使用的键，排在所有普通父节点之前
ROOT_KEY: LockKey = (0, 0)


def parent_key(parent_id: Optional[int]) -> LockKey:
    """父节点ID转换为锁键"""
    if parent_id is None:
        return ROOT_KEY
    return (1, int(parent_id))


class ParentLockRegistry:
    """按父节点划分的可重入锁注册表

    多把锁总是按键排序后依次获取，避免两个 move 交叉持锁导致死锁。
    同一线程可以重复获取已持有的锁（批量操作预先锁定所有父节点，内部单项操作再次获取）。

    使用示例:
        locks = ParentLockRegistry(timeout=5.0)

        with locks.hold(old_parent_id, new_parent_id):
            ...  # 两个兄弟集合都已锁定

    获取超时抛出 StoreUnavailableException(code=LOCK_TIMEOUT)。
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._locks: Dict[LockKey, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: LockKey) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @staticmethod
    def keys_for(parent_ids: Iterable[Optional[int]]) -> List[LockKey]:
        """去重并排序"""
        return sorted({parent_key(pid) for pid in parent_ids})

    @contextmanager
    def hold(self, *parent_ids: Optional[int], timeout: float = None):
        """锁定一个或多个父节点的兄弟集合

        Args:
            *parent_ids: 父节点ID，None 表示根节点集合
            timeout: 单把锁的等待时间，默认使用注册表的 timeout
        """
        wait = self.timeout if timeout is None else timeout
        acquired: List[threading.RLock] = []
        try:
            for key in self.keys_for(parent_ids):
                lock = self._lock_for(key)
                if not lock.acquire(timeout=wait):
                    logger.warning(f"获取同级锁超时: {key}, 等待 {wait}s")
                    raise Err.unavailable(
                        "同级节点正在被其他操作修改，请稍后重试",
                        code=ErrorCode.LOCK_TIMEOUT,
                        lock_key=list(key),
                    )
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        return len(self._locks)


__all__ = ["ParentLockRegistry", "parent_key", "ROOT_KEY"]
