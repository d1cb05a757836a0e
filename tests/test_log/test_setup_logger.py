"""日志配置测试

测试 setup_logger / setup_root_logger / setup_sql_logger 与格式化器
"""

import logging
import os
import re
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler

from qbtree.config import LoggingSettings
from qbtree.log import (
    DEFAULT_LOG_FORMAT,
    LoggingConfigProtocol,
    MicrosecondFormatter,
    create_formatter,
    setup_logger,
    setup_root_logger,
    setup_sql_logger,
)


@contextmanager
def preserved_logger(name=None):
    """退出时恢复日志器的处理器、级别和传播设置"""
    target = logging.getLogger(name) if name else logging.getLogger()
    handlers, level, propagate = list(target.handlers), target.level, target.propagate
    try:
        yield
    finally:
        for handler in list(target.handlers):
            target.removeHandler(handler)
            if handler not in handlers:
                handler.close()
        for handler in handlers:
            target.addHandler(handler)
        target.setLevel(level)
        target.propagate = propagate


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("qbtree.test", logging.INFO, __file__, 10, message, None, None)


class TestFormatter:
    """格式化器测试"""

    def test_microsecond_time(self):
        """测试时间包含 6 位微秒"""
        formatter = create_formatter()
        assert isinstance(formatter, MicrosecondFormatter)
        text = formatter.formatTime(_record())
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{6}", text)

    def test_custom_datefmt(self):
        """测试自定义时间格式"""
        formatter = MicrosecondFormatter(datefmt="%H:%M")
        assert re.fullmatch(r"\d{2}:\d{2}\.\d{6}", formatter.formatTime(_record(), "%H:%M"))

    def test_plain_formatter(self):
        """测试关闭微秒精度"""
        formatter = create_formatter("%(message)s", use_microseconds=False)
        assert not isinstance(formatter, MicrosecondFormatter)
        assert formatter.format(_record("plain")) == "plain"

    def test_default_format(self):
        """测试默认格式包含级别与模块"""
        line = create_formatter().format(_record())
        assert " - INFO - qbtree.test - " in line
        assert line.endswith("hello")
        assert "%(lineno)d" in DEFAULT_LOG_FORMAT


class TestSetupLogger:
    """setup_logger 测试"""

    def test_console_only(self):
        """测试只输出到控制台"""
        with preserved_logger("qbtree.test.console"):
            logger = setup_logger("qbtree.test.console", level="debug")
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 1
            assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_unknown_level_defaults_to_info(self):
        """测试未知级别使用 INFO"""
        with preserved_logger("qbtree.test.level"):
            assert setup_logger("qbtree.test.level", level="verbose").level == logging.INFO

    def test_handlers_replaced(self):
        """测试重复配置不会累积处理器"""
        with preserved_logger("qbtree.test.replace"):
            setup_logger("qbtree.test.replace")
            logger = setup_logger("qbtree.test.replace")
            assert len(logger.handlers) == 1

    def test_file_output(self, log_dir):
        """测试写入文件并自动创建目录"""
        log_file = os.path.join(log_dir, "nested", "tree.log")
        with preserved_logger("qbtree.test.file"):
            logger = setup_logger("qbtree.test.file", log_file=log_file, console=False, propagate=False)
            logger.info("移动节点 3")
            for handler in logger.handlers:
                handler.flush()
            assert type(logger.handlers[0]) is logging.FileHandler

        with open(log_file, encoding="utf-8") as f:
            assert "移动节点 3" in f.read()

    def test_rotating_file(self, log_dir):
        """测试传入选项时使用轮转文件处理器"""
        with preserved_logger("qbtree.test.rotate"):
            logger = setup_logger(
                "qbtree.test.rotate",
                log_file=os.path.join(log_dir, "rotate.log"),
                console=False,
                file_handler_options={"maxBytes": 1024, "backupCount": 2},
            )
            handler = logger.handlers[0]
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 1024
            assert handler.backupCount == 2


class TestSetupRootLogger:
    """setup_root_logger 测试"""

    def test_from_config_object(self, log_dir):
        """测试使用配置对象"""
        config = LoggingSettings(
            level="WARNING",
            file_path=os.path.join(log_dir, "root.log"),
            file_max_bytes="1KB",
            enable_console=False,
        )
        assert isinstance(config, LoggingConfigProtocol)

        with preserved_logger():
            root = setup_root_logger(config=config)
            assert root is logging.getLogger()
            assert root.level == logging.WARNING
            assert root.propagate is False
            assert len(root.handlers) == 1
            assert root.handlers[0].maxBytes == 1024

    def test_from_config_file(self, temp_file, log_dir):
        """测试从 YAML 文件加载"""
        path = temp_file(
            "config/logging.yaml",
            f"logging:\n  level: ERROR\n  file_path: {os.path.join(log_dir, 'file.log')}\n",
        )

        with preserved_logger():
            root = setup_root_logger(config_path=path, console=False)
            assert root.level == logging.ERROR
            assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)


class TestSetupSqlLogger:
    """setup_sql_logger 测试"""

    def test_sql_logger(self):
        """测试 SQL 日志器默认不输出到控制台且不传播"""
        with preserved_logger("sqlalchemy.engine"):
            sql_logger = setup_sql_logger()
            assert sql_logger.name == "sqlalchemy.engine"
            assert sql_logger.level == logging.DEBUG
            assert sql_logger.handlers == []
            assert sql_logger.propagate is False
