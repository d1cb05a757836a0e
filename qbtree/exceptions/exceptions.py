"""业务异常类定义

定义树形分类引擎使用的业务异常类体系。

所有结构性校验失败都以类型化异常同步抛给调用方，引擎内部不记录后吞掉。
只有 StoreUnavailableException 系列标记为可重试，其余异常是确定性的，
重试不会改变结果。
"""

import copy
from enum import Enum
from typing import Optional, List, Any, Dict, Union

from fastapi import status


class ErrorCode(str, Enum):
    """错误代码枚举

    提供引擎使用的错误代码，支持 IDE 补全和拼写检查。
    继承自 str，可以直接作为字符串使用。

    使用示例:
        from qbtree.exceptions import ErrorCode, BusinessException

        try:
            engine.mutations.move(node_id, new_parent_id)
        except BusinessException as e:
            if e.code == ErrorCode.CYCLE_DETECTED:
                ...
    """

    # ==================== 通用错误 ====================
    BUSINESS_ERROR = "BUSINESS_ERROR"
    OPERATION_FAILED = "OPERATION_FAILED"

    # ==================== 资源相关 (404) ====================
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    PARENT_NOT_FOUND = "PARENT_NOT_FOUND"
    NODE_TYPE_NOT_FOUND = "NODE_TYPE_NOT_FOUND"

    # ==================== 冲突相关 (409) ====================
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    DUPLICATE_SIBLING = "DUPLICATE_SIBLING"
    HAS_CHILDREN = "HAS_CHILDREN"
    TYPE_IN_USE = "TYPE_IN_USE"
    DUPLICATE_TYPE = "DUPLICATE_TYPE"
    SYSTEM_TYPE_PROTECTED = "SYSTEM_TYPE_PROTECTED"

    # ==================== 验证相关 (422) ====================
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TYPE_NOT_ALLOWED = "TYPE_NOT_ALLOWED"

    # ==================== 服务相关 (503) ====================
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"
    CASCADE_TIMEOUT = "CASCADE_TIMEOUT"


# 类型别名，支持枚举和字符串
ErrorCodeType = Union[str, ErrorCode]


class BusinessException(Exception):
    """业务异常基类

    所有业务异常都应该继承此类。

    属性:
        message: 错误消息（面向用户）
        code: 错误代码（用于程序判断，支持 ErrorCode 枚举或字符串）
        status_code: HTTP 状态码（供外层 API 映射使用）
        details: 详细错误信息列表
        extra: 额外的上下文信息
        retryable: 调用方是否可以重试

    使用示例:
        raise BusinessException(
            message="节点导入失败",
            code=ErrorCode.OPERATION_FAILED,
            details=["第 3 个节点缺少名称"],
            node_index=3,
        )
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: ErrorCodeType = ErrorCode.BUSINESS_ERROR,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式

        Returns:
            包含异常信息的字典
        """
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra),
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )


# ==================== 404 ====================

class ResourceNotFoundException(BusinessException):
    """资源不存在异常

    引用的节点、父节点或节点类型不存在（或已被软删除）时抛出。

    使用示例:
        raise ResourceNotFoundException(
            "节点不存在",
            code=ErrorCode.NODE_NOT_FOUND,
            resource_type="TreeNode",
            resource_id=42,
        )
    """

    def __init__(
        self,
        message: str = "资源不存在",
        code: ErrorCodeType = ErrorCode.RESOURCE_NOT_FOUND,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            **extra
        )


# ==================== 409 ====================

class ResourceConflictException(BusinessException):
    """资源冲突异常

    当资源已存在或发生冲突时抛出此异常。
    """

    def __init__(
        self,
        message: str = "资源冲突",
        code: ErrorCodeType = ErrorCode.RESOURCE_CONFLICT,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            **extra
        )


class CycleDetectedException(ResourceConflictException):
    """移动会使节点成为自身后代的后代"""

    def __init__(self, message: str = "不能将节点移动到自身或其后代之下", **kwargs):
        kwargs.setdefault("code", ErrorCode.CYCLE_DETECTED)
        super().__init__(message, **kwargs)


class DuplicateSiblingException(ResourceConflictException):
    """同一父节点下已存在相同编码或名称的兄弟节点"""

    def __init__(self, message: str = "同级节点中已存在相同名称或编码", **kwargs):
        kwargs.setdefault("code", ErrorCode.DUPLICATE_SIBLING)
        super().__init__(message, **kwargs)


class HasChildrenException(ResourceConflictException):
    """非级联删除一个仍有子节点的节点"""

    def __init__(self, message: str = "节点存在子节点，无法删除", **kwargs):
        kwargs.setdefault("code", ErrorCode.HAS_CHILDREN)
        super().__init__(message, **kwargs)


class TypeInUseException(ResourceConflictException):
    """节点类型仍被节点引用时不能删除"""

    def __init__(self, message: str = "节点类型正在被使用，无法删除", **kwargs):
        kwargs.setdefault("code", ErrorCode.TYPE_IN_USE)
        super().__init__(message, **kwargs)


class DuplicateTypeException(ResourceConflictException):
    """节点类型编码或名称重复"""

    def __init__(self, message: str = "节点类型编码或名称已存在", **kwargs):
        kwargs.setdefault("code", ErrorCode.DUPLICATE_TYPE)
        super().__init__(message, **kwargs)


class ConcurrencyConflictException(ResourceConflictException):
    """乐观锁版本不一致

    使用示例:
        raise ConcurrencyConflictException(
            "节点已被其他操作修改",
            expected_version=3,
            actual_version=4,
        )
    """

    def __init__(self, message: str = "数据已被其他操作修改，请刷新后重试", **kwargs):
        kwargs.setdefault("code", ErrorCode.VERSION_CONFLICT)
        super().__init__(message, **kwargs)


# ==================== 422 ====================

class ValidationException(BusinessException):
    """数据验证异常

    输入形状错误时抛出，如名称为空、排序号非法、更新了结构字段等。

    使用示例:
        raise ValidationException(
            "数据验证失败",
            details=["名称不能为空", "排序号必须大于等于 1"]
        )
    """

    def __init__(
        self,
        message: str = "数据验证失败",
        code: ErrorCodeType = ErrorCode.VALIDATION_ERROR,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            **extra
        )


class TypeNotAllowedException(ValidationException):
    """父节点类型不允许子节点，或节点自身类型已停用"""

    def __init__(self, message: str = "节点类型不允许此操作", **kwargs):
        kwargs.setdefault("code", ErrorCode.TYPE_NOT_ALLOWED)
        super().__init__(message, **kwargs)


# ==================== 503 ====================

class ServiceUnavailableException(BusinessException):
    """服务不可用异常

    当依赖的服务不可用时抛出此异常。
    """

    retryable = True

    def __init__(
        self,
        message: str = "服务暂时不可用",
        code: ErrorCodeType = ErrorCode.SERVICE_UNAVAILABLE,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            **extra
        )


class StoreUnavailableException(ServiceUnavailableException):
    """存储层暂时不可用（连接中断、锁等待超时等），调用方可重试

    使用示例:
        try:
            ...
        except OperationalError as e:
            raise StoreUnavailableException("数据库连接失败") from e
    """

    def __init__(self, message: str = "存储暂时不可用", **kwargs):
        kwargs.setdefault("code", ErrorCode.STORE_UNAVAILABLE)
        super().__init__(message, **kwargs)


class CascadeTimeoutException(StoreUnavailableException):
    """级联重写后代路径超时，整个移动已回滚"""

    def __init__(self, message: str = "级联更新后代路径超时，操作已回滚", **kwargs):
        kwargs.setdefault("code", ErrorCode.CASCADE_TIMEOUT)
        super().__init__(message, **kwargs)


class Err:
    """异常快捷创建类

    提供统一入口，通过 IDE 自动补全发现所有可用的异常类型。

    使用示例:
        from qbtree.exceptions import Err

        # 资源不存在 (404)
        raise Err.not_found("节点不存在", code=ErrorCode.NODE_NOT_FOUND)

        # 环路 (409)
        raise Err.cycle(node_id=2, new_parent_id=3)

        # 版本冲突 (409)
        raise Err.version_conflict(expected_version=1, actual_version=2)

        # 数据验证失败 (422)
        raise Err.invalid("名称不能为空")

        # 存储不可用 (503)
        raise Err.unavailable("数据库连接失败")
    """

    @staticmethod
    def not_found(message: str = "资源不存在", **kwargs) -> ResourceNotFoundException:
        """资源不存在 (404)"""
        return ResourceNotFoundException(message, **kwargs)

    @staticmethod
    def node_not_found(node_id: Any, message: str = None) -> ResourceNotFoundException:
        """节点不存在 (404)"""
        return ResourceNotFoundException(
            message or f"节点不存在: {node_id}",
            code=ErrorCode.NODE_NOT_FOUND,
            resource_type="TreeNode",
            resource_id=node_id,
        )

    @staticmethod
    def type_not_found(type_ref: Any) -> ResourceNotFoundException:
        """节点类型不存在 (404)"""
        return ResourceNotFoundException(
            f"节点类型不存在: {type_ref}",
            code=ErrorCode.NODE_TYPE_NOT_FOUND,
            resource_type="TreeNodeType",
            resource_id=type_ref,
        )

    @staticmethod
    def conflict(message: str = "资源冲突", **kwargs) -> ResourceConflictException:
        """资源冲突 (409)"""
        return ResourceConflictException(message, **kwargs)

    @staticmethod
    def cycle(message: str = "不能将节点移动到自身或其后代之下", **kwargs) -> CycleDetectedException:
        """检测到环 (409)"""
        return CycleDetectedException(message, **kwargs)

    @staticmethod
    def duplicate_sibling(message: str = "同级节点中已存在相同名称或编码", **kwargs) -> DuplicateSiblingException:
        """兄弟节点重复 (409)"""
        return DuplicateSiblingException(message, **kwargs)

    @staticmethod
    def has_children(message: str = "节点存在子节点，无法删除", **kwargs) -> HasChildrenException:
        """存在子节点 (409)"""
        return HasChildrenException(message, **kwargs)

    @staticmethod
    def type_in_use(message: str = "节点类型正在被使用，无法删除", **kwargs) -> TypeInUseException:
        """节点类型使用中 (409)"""
        return TypeInUseException(message, **kwargs)

    @staticmethod
    def version_conflict(message: str = "数据已被其他操作修改，请刷新后重试", **kwargs) -> ConcurrencyConflictException:
        """版本冲突 (409)"""
        return ConcurrencyConflictException(message, **kwargs)

    @staticmethod
    def invalid(message: str = "数据验证失败", **kwargs) -> ValidationException:
        """数据验证失败 (422)"""
        return ValidationException(message, **kwargs)

    @staticmethod
    def type_not_allowed(message: str = "节点类型不允许此操作", **kwargs) -> TypeNotAllowedException:
        """类型不允许 (422)"""
        return TypeNotAllowedException(message, **kwargs)

    @staticmethod
    def unavailable(message: str = "存储暂时不可用", **kwargs) -> StoreUnavailableException:
        """存储不可用 (503)"""
        return StoreUnavailableException(message, **kwargs)

    @staticmethod
    def fail(message: str = "操作失败", **kwargs) -> BusinessException:
        """通用业务异常 (400)"""
        return BusinessException(message, **kwargs)
