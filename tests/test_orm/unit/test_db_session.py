"""数据库会话管理测试

测试 init_database / db_session_scope / on_request_end
"""

import os

import pytest
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.pool import QueuePool, StaticPool

from qbtree.config import DatabaseSettings
from qbtree.orm import (
    BaseModel,
    CoreModel,
    db_manager,
    db_session_scope,
    get_engine,
    init_database,
    on_request_end,
)


class SessionNote(BaseModel):
    """会话测试模型"""
    __tablename__ = "test_session_notes"
    __table_args__ = {'extend_existing': True}

    body: Mapped[str] = mapped_column(String(200), nullable=True)


@pytest.fixture
def fresh_manager(monkeypatch):
    """测试前后重置数据库管理器，并恢复 CoreModel.query"""
    monkeypatch.setattr(CoreModel, "query", None, raising=False)
    db_manager.dispose()
    yield db_manager
    db_manager.cleanup()
    db_manager.dispose()


@pytest.fixture
def memory_db(fresh_manager):
    init_database("sqlite:///:memory:", create_tables=True)
    return fresh_manager


class TestInitDatabase:
    """初始化测试"""

    def test_not_initialized(self, fresh_manager):
        """测试未初始化时访问引擎报错"""
        assert fresh_manager.is_initialized is False
        with pytest.raises(RuntimeError):
            get_engine()
        with pytest.raises(RuntimeError):
            fresh_manager.get_session()

    def test_memory_database(self, memory_db):
        """测试内存库使用 StaticPool"""
        assert memory_db.is_initialized
        assert isinstance(get_engine().pool, StaticPool)
        assert SessionNote.query is not None

    def test_file_database_from_config(self, fresh_manager, temp_dir):
        """测试通过配置对象初始化文件库"""
        url = f"sqlite:///{os.path.join(temp_dir, 'session_test.db')}"
        engine, scope = init_database(config=DatabaseSettings(url=url, pool_size=3))

        assert isinstance(engine.pool, QueuePool)
        assert engine.pool.size() == 3
        assert scope is fresh_manager.session_scope

    def test_keyword_overrides(self, fresh_manager, temp_dir):
        """测试关键字参数覆盖配置对象中的连接池参数"""
        url = f"sqlite:///{os.path.join(temp_dir, 'override_test.db')}"
        engine, _ = init_database(config=DatabaseSettings(url=url, pool_size=3), pool_size=2)
        assert engine.pool.size() == 2

    def test_url_required(self, fresh_manager):
        """测试缺少连接URL"""
        with pytest.raises(ValueError):
            init_database()


class TestSessionScope:
    """db_session_scope 测试"""

    def test_commit_on_success(self, memory_db):
        """测试正常结束时提交"""
        with db_session_scope() as session:
            SessionNote(name="Math").save()
            assert session is memory_db.get_session()

        with db_session_scope():
            assert [n.name for n in SessionNote.get_all()] == ["Math"]

    def test_rollback_on_error(self, memory_db):
        """测试异常时回滚"""
        with pytest.raises(ValueError):
            with db_session_scope():
                SessionNote(name="Lost").save()
                raise ValueError("失败")

        with db_session_scope():
            assert SessionNote.get_all() == []

    def test_no_auto_commit(self, memory_db):
        """测试关闭自动提交时由 on_request_end 处理未提交的更改"""
        with db_session_scope(auto_commit=False):
            SessionNote(name="Pending").save()

        with db_session_scope():
            assert [n.name for n in SessionNote.get_all()] == ["Pending"]

    def test_request_id(self, memory_db):
        """测试请求ID在作用域内固定，结束后重置"""
        with db_session_scope(request_id="nightly-rebuild"):
            assert memory_db._get_request_id() == "nightly-rebuild"
            # 已锁定时不能覆盖
            assert memory_db._set_request_id("other") == "nightly-rebuild"

        assert memory_db._get_request_id() != "nightly-rebuild"

    def test_on_request_end_commits(self, memory_db):
        """测试 on_request_end 提交并移除 session"""
        memory_db._set_request_id("manual")
        session = memory_db.get_session()
        session.add(SessionNote(name="Manual"))

        on_request_end()

        assert memory_db.session_scope.registry.has() is False
        with db_session_scope():
            assert [n.name for n in SessionNote.get_all()] == ["Manual"]
