"""事务上下文

一个 TransactionContext 对应 session 上的一次顶层事务，
内层 transaction() 通过 depth 计数加入，只有最外层负责提交或回滚。
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy.orm import Session

from qbtree.log import get_logger

from .exceptions import TransactionClosedError

logger = get_logger("qbtree.orm.transaction")


class TransactionState(str, Enum):
    """事务状态：ACTIVE 之后只会进入 COMMITTED 或 ROLLED_BACK 之一"""

    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionContext:
    """顶层事务

    使用示例:
        with transaction_manager.transaction() as tx:
            node.save(commit=True)   # 事务内只 flush
            assert tx.depth == 1
    """

    def __init__(self, session: Session):
        self.session = session
        self.state = TransactionState.ACTIVE
        self.depth = 1

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def should_suppress_commit(self) -> bool:
        """事务进行中时，模型上的 commit=True 只 flush，提交留给最外层"""
        return self.is_active

    def commit(self) -> None:
        if not self.is_active:
            raise TransactionClosedError(self.state.value)
        self.session.commit()
        self.state = TransactionState.COMMITTED
        logger.debug("事务已提交")

    def rollback(self) -> None:
        if self.state is TransactionState.ROLLED_BACK:
            return
        if self.state is TransactionState.COMMITTED:
            raise TransactionClosedError(self.state.value)
        self.session.rollback()
        self.state = TransactionState.ROLLED_BACK
        logger.debug("事务已回滚")

    def __repr__(self) -> str:
        return f"TransactionContext(state={self.state.value}, depth={self.depth})"
