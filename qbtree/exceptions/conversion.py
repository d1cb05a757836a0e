"""存储异常转换

将 SQLAlchemy 的连接类异常转换为 StoreUnavailableException，
业务层只需要区分"数据不存在"和"存储暂时不可用"。

使用示例:
    from qbtree.exceptions import store_guard, translate_store_errors

    @store_guard
    def get_by_id(self, node_id):
        return self.node_model.get(node_id)

    with translate_store_errors("批量更新路径"):
        session.flush()
"""

from contextlib import contextmanager
from functools import wraps
from typing import Callable, TypeVar

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from qbtree.log import get_logger
from .exceptions import ErrorCode, StoreUnavailableException

logger = get_logger("qbtree.exceptions")

T = TypeVar("T")

# 视为"存储暂时不可用"的底层异常
STORE_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


@contextmanager
def translate_store_errors(operation: str = "存储操作"):
    """在上下文内把连接类异常转换为 StoreUnavailableException"""
    try:
        yield
    except STORE_ERRORS as e:
        logger.warning(f"{operation}失败，存储不可用: {type(e).__name__}")
        raise StoreUnavailableException(
            f"{operation}失败：存储暂时不可用",
            code=ErrorCode.STORE_UNAVAILABLE,
            details=[str(getattr(e, "orig", None) or e)],
        ) from e


def store_guard(func: Callable[..., T]) -> Callable[..., T]:
    """装饰器版本的 translate_store_errors"""
    @wraps(func)
    def wrapper(*args, **kwargs) -> T:
        with translate_store_errors(func.__name__):
            return func(*args, **kwargs)
    return wrapper


__all__ = ["STORE_ERRORS", "translate_store_errors", "store_guard"]
