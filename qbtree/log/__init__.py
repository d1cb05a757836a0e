"""日志模块

提供日志配置与管理：
- 控制台与按大小轮转的文件输出
- 微秒精度时间戳
- 按模块名自动推断的日志器

使用示例:
    from qbtree.log import setup_logger, get_logger

    # 创建自定义日志记录器
    setup_logger("qbtree", level="DEBUG", log_file="logs/tree.log")

    # 模块内获取日志器
    logger = get_logger()
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    setup_sql_logger,
    create_formatter,
    MicrosecondFormatter,
    LoggingConfigProtocol,
    DEFAULT_LOG_FORMAT,
    orm_logger,
    tree_logger,
    transaction_logger,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "setup_sql_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "LoggingConfigProtocol",
    "DEFAULT_LOG_FORMAT",
    "orm_logger",
    "tree_logger",
    "transaction_logger",
    "logger",
    "get_logger",
]
