"""测试存储异常转换

测试 translate_store_errors / store_guard 把连接类异常转换为 StoreUnavailableException。
"""

import pytest
from sqlalchemy.exc import DisconnectionError, IntegrityError, InterfaceError, OperationalError

from qbtree.exceptions import (
    ErrorCode,
    STORE_ERRORS,
    StoreUnavailableException,
    translate_store_errors,
    store_guard,
)


def _operational(message: str = "database is locked") -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception(message))


class TestTranslateStoreErrors:
    """上下文管理器测试"""

    def test_operational_error(self):
        """测试 OperationalError 被转换"""
        with pytest.raises(StoreUnavailableException) as exc_info:
            with translate_store_errors("读取节点"):
                raise _operational()

        exc = exc_info.value
        assert exc.code == ErrorCode.STORE_UNAVAILABLE
        assert exc.status_code == 503
        assert exc.retryable is True
        assert exc.message.startswith("读取节点失败")
        assert exc.details == ["database is locked"]
        assert isinstance(exc.__cause__, OperationalError)

    @pytest.mark.parametrize("error", [
        InterfaceError("SELECT 1", {}, Exception("closed")),
        DisconnectionError("连接已断开"),
    ])
    def test_other_connection_errors(self, error):
        """测试其他连接类异常"""
        assert isinstance(error, STORE_ERRORS)
        with pytest.raises(StoreUnavailableException):
            with translate_store_errors():
                raise error

    def test_integrity_error_not_translated(self):
        """测试约束类异常原样抛出"""
        with pytest.raises(IntegrityError):
            with translate_store_errors():
                raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    def test_business_error_not_translated(self):
        """测试普通异常原样抛出"""
        with pytest.raises(ValueError):
            with translate_store_errors():
                raise ValueError("bad")

    def test_no_error(self):
        """测试无异常时正常执行"""
        with translate_store_errors():
            result = 1 + 1
        assert result == 2


class TestStoreGuard:
    """装饰器测试"""

    def test_guard_translates(self):
        """测试装饰器转换异常并使用函数名作为操作名"""
        @store_guard
        def get_by_id(node_id):
            raise _operational("disk I/O error")

        with pytest.raises(StoreUnavailableException) as exc_info:
            get_by_id(1)
        assert exc_info.value.message.startswith("get_by_id")
        assert exc_info.value.details == ["disk I/O error"]

    def test_guard_passes_result(self):
        """测试正常返回值"""
        @store_guard
        def count():
            return 3

        assert count() == 3
        assert count.__name__ == "count"
