"""事务管理器

分类树的每个写操作都通过 transaction_manager.transaction() 执行。
没有外层事务时新建一个，结束时提交，抛出异常时回滚；
已有外层事务时直接加入，由外层统一提交（批量操作整体成功或整体回滚）。
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional

from sqlalchemy.orm import Session

from qbtree.log import get_logger

from .context import TransactionContext

logger = get_logger("qbtree.orm.transaction")

# 每个线程 / 协程各自的当前事务
_current_transaction: ContextVar[Optional[TransactionContext]] = ContextVar(
    "_current_transaction", default=None
)


def get_current_transaction() -> Optional[TransactionContext]:
    """当前活跃的事务，不在事务中时返回 None"""
    tx = _current_transaction.get()
    if tx is not None and tx.is_active:
        return tx
    return None


class TransactionManager:
    """事务管理器（单例）

    使用示例:
        from qbtree.orm import transaction_manager as tm

        with tm.transaction():
            parent.save()
            with tm.transaction():      # 加入外层事务
                child.save()
        # 退出最外层时一次提交
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True

    def get_session(self) -> Session:
        """未显式传入 session 时使用 db_manager 的 session"""
        from ..db_session import db_manager
        return db_manager.get_session()

    @property
    def current_transaction(self) -> Optional[TransactionContext]:
        return get_current_transaction()

    def in_transaction(self) -> bool:
        return get_current_transaction() is not None

    @contextmanager
    def transaction(self, session: Session = None) -> Generator[TransactionContext, None, None]:
        """进入事务，已有活跃事务时加入

        注意:
            加入外层事务后，内层的异常必须继续向外抛出。
            在内层捕获异常后继续执行，外层会把部分写入一起提交。
        """
        outer = get_current_transaction()
        if outer is not None:
            outer.depth += 1
            logger.debug(f"加入外层事务 (depth={outer.depth})")
            try:
                yield outer
            finally:
                outer.depth -= 1
            return

        tx = TransactionContext(session if session is not None else self.get_session())
        token = _current_transaction.set(tx)
        try:
            yield tx
        except BaseException:
            tx.rollback()
            raise
        else:
            if tx.is_active:
                try:
                    tx.commit()
                except Exception:
                    tx.rollback()
                    raise
        finally:
            _current_transaction.reset(token)


transaction_manager = TransactionManager()
