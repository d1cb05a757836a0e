"""事务异常"""


class TransactionError(Exception):
    """事务错误基类"""
    pass


class TransactionClosedError(TransactionError):
    """事务已经提交或回滚后，再次提交时抛出"""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"事务已结束（{state}），不能再提交")
