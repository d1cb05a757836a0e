"""文件大小工具测试

测试文件大小解析与格式化功能
"""

import pytest

from qbtree.utils import parse_file_size, format_file_size


class TestParseFileSize:
    """parse_file_size 函数测试"""

    def test_parse_bytes(self):
        """测试解析字节"""
        assert parse_file_size("100B") == 100
        assert parse_file_size("100 B") == 100
        assert parse_file_size("100b") == 100

    def test_parse_units(self):
        """测试解析各单位"""
        assert parse_file_size("1KB") == 1024
        assert parse_file_size("10MB") == 10 * 1024 * 1024
        assert parse_file_size("2 GB") == 2 * 1024 ** 3
        assert parse_file_size("1TB") == 1024 ** 4

    def test_parse_aliases(self):
        """测试 K/M/G/T 简写"""
        assert parse_file_size("512K") == 512 * 1024
        assert parse_file_size("10m") == 10 * 1024 * 1024
        assert parse_file_size("1G") == 1024 ** 3

    def test_parse_decimal_values(self):
        """测试解析小数"""
        assert parse_file_size("1.5KB") == 1536
        assert parse_file_size("0.5MB") == 512 * 1024

    def test_parse_without_unit(self):
        """测试不带单位（字节数）"""
        assert parse_file_size("2048") == 2048
        assert parse_file_size(1024) == 1024
        assert parse_file_size(1.9) == 1

    def test_parse_with_extra_spaces(self):
        """测试首尾空格"""
        assert parse_file_size("  10MB  ") == 10 * 1024 * 1024

    @pytest.mark.parametrize("value", ["", "   ", "abc", "MB", "ten MB"])
    def test_parse_invalid_format(self, value):
        """测试无效格式"""
        with pytest.raises(ValueError):
            parse_file_size(value)


class TestFormatFileSize:
    """format_file_size 函数测试"""

    def test_format_units(self):
        """测试格式化各单位"""
        assert format_file_size(0) == "0.00 B"
        assert format_file_size(512) == "512.00 B"
        assert format_file_size(1536) == "1.50 KB"
        assert format_file_size(10 * 1024 * 1024) == "10.00 MB"
        assert format_file_size(3 * 1024 ** 3) == "3.00 GB"
        assert format_file_size(1024 ** 4) == "1.00 TB"

    def test_format_precision(self):
        """测试小数位数"""
        assert format_file_size(1024, precision=0) == "1 KB"
        assert format_file_size(1536, precision=1) == "1.5 KB"

    def test_format_negative(self):
        """测试负数"""
        assert format_file_size(-1024) == "-1.00 KB"

    def test_format_huge_value(self):
        """测试超过 TB 的值仍以 TB 表示"""
        assert format_file_size(1024 ** 5) == "1024.00 TB"

    def test_parse_formatted_value(self):
        """测试格式化结果可以再解析"""
        assert parse_file_size(format_file_size(10 * 1024 * 1024)) == 10 * 1024 * 1024
