"""事务管理模块

- transaction_manager.transaction(): 写操作的事务边界，已有外层事务时加入
- TransactionContext: 顶层事务的状态与提交 / 回滚

使用示例:
    from qbtree.orm.transaction import transaction_manager as tm

    with tm.transaction() as tx:
        node.save()
"""

from .exceptions import TransactionError, TransactionClosedError
from .context import TransactionContext, TransactionState
from .manager import (
    TransactionManager,
    transaction_manager,
    get_current_transaction,
)

__all__ = [
    "TransactionError",
    "TransactionClosedError",
    "TransactionContext",
    "TransactionState",
    "TransactionManager",
    "transaction_manager",
    "get_current_transaction",
]
