"""
qbtree - 题库分类树引擎

提供分类树的存储、结构变更、查询统计，以及配套的 ORM、配置、日志、异常等基础功能
"""

from .version import __version__, __author__, __description__

# 导出ORM基类
from .orm import (
    CoreModel,
    BaseModel,
    init_database,
    get_engine,
    db_session_scope,
    on_request_end,
    transaction_manager,
    # 软删除扩展
    activate_soft_delete_hook,
    is_soft_delete_active,
    SimpleSoftDeleteMixin,
)

# 导出日志模块
from .log import (
    setup_logger,
    setup_root_logger,
    tree_logger,
    logger,
    get_logger,
)

# 导出工具函数
from .utils import (
    parse_file_size,
    format_file_size,
)

# 导出配置
from .config import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    TreeSettings,
    ConfigLoader,
    ConfigManager,
    load_yaml_config,
)

# 导出异常处理模块
from .exceptions import (
    # 异常快捷创建类（推荐）
    Err,
    # 错误代码枚举
    ErrorCode,
    # 业务异常
    BusinessException,
    ResourceNotFoundException,
    ResourceConflictException,
    CycleDetectedException,
    DuplicateSiblingException,
    HasChildrenException,
    TypeInUseException,
    DuplicateTypeException,
    ConcurrencyConflictException,
    ValidationException,
    TypeNotAllowedException,
    StoreUnavailableException,
    CascadeTimeoutException,
)

# 导出分类树模块
from .category import (
    TreeNodeType,
    TreeNode,
    NodeContentLink,
    TreeNodeView,
    TreeSnapshot,
    TreeDocument,
    TreeEngine,
    create_tree_engine,
)

__all__ = [
    # 版本信息
    "__version__",
    "__author__",
    "__description__",

    # ORM
    "CoreModel",
    "BaseModel",
    "init_database",
    "get_engine",
    "db_session_scope",
    "on_request_end",
    "transaction_manager",
    "activate_soft_delete_hook",
    "is_soft_delete_active",
    "SimpleSoftDeleteMixin",

    # 日志
    "setup_logger",
    "setup_root_logger",
    "tree_logger",
    "logger",
    "get_logger",

    # 工具
    "parse_file_size",
    "format_file_size",

    # 配置
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "TreeSettings",
    "ConfigLoader",
    "ConfigManager",
    "load_yaml_config",

    # 异常
    "Err",
    "ErrorCode",
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
    "StoreUnavailableException",
    "CascadeTimeoutException",

    # 分类树
    "TreeNodeType",
    "TreeNode",
    "NodeContentLink",
    "TreeNodeView",
    "TreeSnapshot",
    "TreeDocument",
    "TreeEngine",
    "create_tree_engine",
]
