"""
数据库会话管理

engine 与 scoped session 由单例 db_manager 持有。session 按调用隔离：
每个 db_session_scope() 有自己的 request_id，同一调用内的模型共用一个 session。

公开 API:
- init_database(): 创建引擎，绑定 CoreModel.query
- get_engine(): 当前引擎
- db_session_scope(): 一次调用的 session，结束时提交 / 回滚并清理
- on_request_end(): 手动结束一次调用
"""

import os
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Generator
from uuid import uuid4

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import QueuePool, StaticPool

from qbtree.config import DatabaseSettings
from qbtree.log import get_logger

_logger = get_logger("qbtree.orm.session")

__all__ = [
    'db_manager',
    'init_database',
    'get_engine',
    'db_session_scope',
    'on_request_end',
]

_NOT_READY = "数据库未初始化，请先调用 init_database()"


def _engine_options(settings: DatabaseSettings) -> Dict[str, Any]:
    """按数据库类型选择连接池参数"""
    pool = dict(
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
        pool_pre_ping=settings.pool_pre_ping,
    )
    url = settings.url
    if not url.startswith("sqlite:///"):
        return pool

    db_path = url[len("sqlite:///"):]
    if db_path in ("", ":memory:"):
        # 内存库只能有一个连接，否则每个连接看到的是不同的库
        return dict(poolclass=StaticPool, connect_args={"check_same_thread": False})

    _logger.info(f"SQLite 文件: {os.path.abspath(db_path)}")
    return dict(
        poolclass=QueuePool,
        connect_args={"check_same_thread": False, "timeout": settings.pool_timeout},
        **pool,
    )


class DatabaseManager:
    """数据库管理器（单例）

    使用示例:
        from qbtree.orm import db_manager

        db_manager.init(DatabaseSettings(url="sqlite:///./question_bank.db"))
        engine = db_manager.engine
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._engine = None
        self._session_scope = None
        self._request_id: ContextVar[str] = ContextVar('request_id', default='')
        # 调用开始（或第一次取 session）后 request_id 固定，结束时才释放
        self._request_pinned: ContextVar[bool] = ContextVar('request_pinned', default=False)
        self._initialized = True

    @property
    def engine(self):
        if self._engine is None:
            raise RuntimeError(_NOT_READY)
        return self._engine

    @property
    def session_scope(self) -> scoped_session:
        if self._session_scope is None:
            raise RuntimeError(_NOT_READY)
        return self._session_scope

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None and self._session_scope is not None

    def init(
        self,
        settings: DatabaseSettings = None,
        auto_setup_query: bool = True,
        create_tables: bool = False,
    ):
        """创建引擎和 scoped session

        Args:
            settings: 数据库配置
            auto_setup_query: 是否把 CoreModel.query 绑定到这个 scoped session
            create_tables: 是否按已注册的模型建表

        Returns:
            (engine, session_scope)
        """
        if settings is None or not settings.url:
            raise ValueError("缺少数据库连接 URL")

        _logger.info(f"连接数据库: {settings.url}")
        self._engine = create_engine(settings.url, echo=settings.echo, **_engine_options(settings))
        self._session_scope = scoped_session(
            sessionmaker(autocommit=False, autoflush=True, bind=self._engine),
            scopefunc=self._get_request_id,
        )

        if auto_setup_query:
            from .core_model import CoreModel
            CoreModel.query = self._session_scope.query_property()

        if create_tables:
            from .id_model import Base
            Base.metadata.create_all(bind=self._engine)
            _logger.info("数据表已创建")

        return self._engine, self._session_scope

    def get_session(self) -> Session:
        """当前调用的 session；直接使用时需要自己提交和清理"""
        session = self.session_scope()
        self._request_pinned.set(True)
        return session

    def cleanup(self):
        """结束当前调用：提交未提交的更改并移除 session，可重复调用

        提交失败时回滚并抛出。
        """
        request_id = self._request_id.get()
        try:
            if self._session_scope is not None and self._session_scope.registry.has():
                session = self._session_scope()
                if session.new or session.dirty or session.deleted:
                    try:
                        session.commit()
                    except Exception:
                        _logger.warning(f"[request_id={request_id}] 结束时提交失败，已回滚")
                        session.rollback()
                        raise
                self._session_scope.remove()
                _logger.debug(f"[request_id={request_id}] session 已清理")
        finally:
            self._request_id.set('')
            self._request_pinned.set(False)

    def dispose(self):
        """关闭连接池，回到未初始化状态"""
        if self._session_scope is not None:
            self._session_scope.remove()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_scope = None

    # ==================== request_id ====================

    def _set_request_id(self, request_id: str = None) -> str:
        """开始一次调用；已经固定时沿用已有的 request_id"""
        if self._request_pinned.get():
            return self._request_id.get()
        request_id = request_id or uuid4().hex[:8]
        self._request_id.set(request_id)
        self._request_pinned.set(True)
        return request_id

    def _get_request_id(self) -> str:
        request_id = self._request_id.get()
        if not request_id:
            request_id = uuid4().hex[:8]
            self._request_id.set(request_id)
        return request_id


db_manager = DatabaseManager()


# ==================== 公开 API ====================

def init_database(
    database_url: str = None,
    config: DatabaseSettings = None,
    auto_setup_query: bool = True,
    create_tables: bool = False,
    **overrides,
):
    """初始化数据库

    使用示例:
        init_database("sqlite:///./question_bank.db", create_tables=True)
        init_database(config=settings.database)
        init_database("postgresql://localhost/qb", pool_size=10, echo=True)
    """
    if config is None:
        if not database_url:
            raise ValueError("缺少数据库连接 URL，请传入 database_url 或 config")
        config = DatabaseSettings(url=database_url, **overrides)
    elif overrides:
        config = config.model_copy(update=overrides)
    return db_manager.init(config, auto_setup_query=auto_setup_query, create_tables=create_tables)


def get_engine():
    return db_manager.engine


def on_request_end():
    """结束当前调用（提交并清理 session）"""
    db_manager.cleanup()


@contextmanager
def db_session_scope(
    request_id: str = None,
    auto_commit: bool = True
) -> Generator[Session, None, None]:
    """一次调用的 session

    正常结束时提交（auto_commit=False 时留给 on_request_end），异常时回滚，最后清理。

    使用示例:
        with db_session_scope(request_id="nightly-rebuild"):
            engine.maintenance.rebuild_paths()
    """
    db_manager._set_request_id(request_id)
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        on_request_end()
