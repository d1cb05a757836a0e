"""异常处理模块

提供树形分类引擎的业务异常类体系。

使用示例:
    from qbtree.exceptions import Err, ErrorCode, BusinessException

    try:
        engine.mutations.delete(node_id)
    except BusinessException as e:
        if e.code == ErrorCode.HAS_CHILDREN:
            engine.mutations.delete(node_id, cascade=True)
"""

from .exceptions import (
    # ===== 推荐使用 =====
    Err,
    ErrorCode,
    ErrorCodeType,

    # ===== 异常类 =====
    BusinessException,
    ResourceNotFoundException,          # 404
    ResourceConflictException,          # 409
    CycleDetectedException,             # 409
    DuplicateSiblingException,          # 409
    HasChildrenException,               # 409
    TypeInUseException,                 # 409
    DuplicateTypeException,             # 409
    ConcurrencyConflictException,       # 409
    ValidationException,                # 422
    TypeNotAllowedException,            # 422
    ServiceUnavailableException,        # 503
    StoreUnavailableException,          # 503
    CascadeTimeoutException,            # 503
)
from .conversion import STORE_ERRORS, translate_store_errors, store_guard

__all__ = [
    "Err",
    "ErrorCode",
    "ErrorCodeType",
    "BusinessException",
    "ResourceNotFoundException",
    "ResourceConflictException",
    "CycleDetectedException",
    "DuplicateSiblingException",
    "HasChildrenException",
    "TypeInUseException",
    "DuplicateTypeException",
    "ConcurrencyConflictException",
    "ValidationException",
    "TypeNotAllowedException",
    "ServiceUnavailableException",
    "StoreUnavailableException",
    "CascadeTimeoutException",
    "STORE_ERRORS",
    "translate_store_errors",
    "store_guard",
]
