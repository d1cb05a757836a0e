"""文件大小解析工具

提供文件大小字符串的解析功能，支持 B, KB, MB, GB, TB 等单位。
日志配置中的 file_max_bytes 通过它转换为字节数。

使用示例:
    from qbtree.utils import parse_file_size, format_file_size

    size = parse_file_size("10MB")   # 10485760
    text = format_file_size(10485760)  # "10.00 MB"
"""

from typing import Union


# 单位转换表（按长度降序排列）
SIZE_UNITS = [
    ('TB', 1024 ** 4),
    ('GB', 1024 ** 3),
    ('MB', 1024 ** 2),
    ('KB', 1024),
    ('B', 1),
]

# 单位别名
SIZE_UNIT_ALIASES = {
    'T': 'TB',
    'G': 'GB',
    'M': 'MB',
    'K': 'KB',
}


def parse_file_size(size_str: Union[str, int, float]) -> int:
    """解析文件大小字符串

    支持的单位：B, KB, MB, GB, TB（不区分大小写），以及 K/M/G/T 简写

    Args:
        size_str: 文件大小字符串，如 "10MB", "512KB", "1.5GB"
                  也可以直接传入数字（字节数）

    Returns:
        int: 文件大小的字节数

    Raises:
        ValueError: 当格式无效时抛出异常

    使用示例:
        >>> parse_file_size("512KB")
        524288
        >>> parse_file_size(1024)
        1024
    """
    if isinstance(size_str, (int, float)):
        return int(size_str)

    text = str(size_str).strip().upper()
    if not text:
        raise ValueError("文件大小字符串不能为空")

    for alias, unit in SIZE_UNIT_ALIASES.items():
        if text.endswith(alias):
            text = text[:-len(alias)] + unit
            break

    for unit, multiplier in SIZE_UNITS:
        if text.endswith(unit):
            number_str = text[:-len(unit)].strip()
            try:
                return int(float(number_str) * multiplier)
            except ValueError:
                raise ValueError(f"无法解析文件大小: {size_str}") from None

    try:
        return int(float(text))
    except ValueError:
        raise ValueError(f"无法解析文件大小: {size_str}") from None


def format_file_size(size_bytes: Union[int, float], precision: int = 2) -> str:
    """格式化字节数为可读字符串

    Args:
        size_bytes: 字节数
        precision: 小数位数

    Returns:
        格式化后的字符串，如 "10.00 MB"
    """
    if size_bytes < 0:
        return f"-{format_file_size(-size_bytes, precision)}"

    value = float(size_bytes)
    for unit in ('B', 'KB', 'MB', 'GB'):
        if value < 1024:
            return f"{value:.{precision}f} {unit}"
        value /= 1024
    return f"{value:.{precision}f} TB"
