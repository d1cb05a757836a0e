"""工具模块

提供通用工具函数：
- 文件大小解析

使用示例:
    from qbtree.utils import parse_file_size, format_file_size
"""

from .file_size import (
    parse_file_size,
    format_file_size,
    SIZE_UNITS,
)

__all__ = [
    "parse_file_size",
    "format_file_size",
    "SIZE_UNITS",
]
