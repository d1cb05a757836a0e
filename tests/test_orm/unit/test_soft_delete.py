"""软删除功能测试

测试软删除相关的功能：
1. SimpleSoftDeleteMixin 与 delete 钩子
2. 查询过滤与 include_deleted 选项
3. SoftDeleteRewriter 语句重写
"""

import pytest
from sqlalchemy import String, select
from sqlalchemy.orm import Mapped, aliased, mapped_column

from qbtree.orm import (
    BaseModel,
    IgnoredTable,
    SoftDeleteRewriter,
    activate_soft_delete_hook,
    deactivate_soft_delete_hook,
    is_soft_delete_active,
)


# ==================== 测试模型定义 ====================

class SoftArticle(BaseModel):
    """测试文章模型"""
    __tablename__ = "test_soft_articles"
    __table_args__ = {'extend_existing': True}

    title: Mapped[str] = mapped_column(String(200), nullable=True)


def _sql(stmt) -> str:
    return str(stmt.compile(compile_kwargs={"literal_binds": True}))


# ==================== 测试类 ====================

class TestSimpleSoftDeleteMixin:
    """SimpleSoftDeleteMixin 测试"""

    @pytest.fixture(autouse=True)
    def setup_db(self, session_scope):
        self.session_scope = session_scope

    def test_new_record_not_deleted(self):
        """测试新记录未删除"""
        article = SoftArticle(title="Test")
        article.save(True)

        loaded = SoftArticle.get(article.id)
        assert loaded.deleted_at is None
        assert loaded.is_deleted is False

    def test_delete_becomes_soft_delete(self):
        """测试 delete() 被钩子转为软删除"""
        article = SoftArticle(title="Test")
        article.save(True)
        article_id = article.id

        article.delete(True)

        assert SoftArticle.get(article_id) is None
        row = SoftArticle.query.execution_options(include_deleted=True).filter_by(id=article_id).first()
        assert row is not None
        assert row.deleted_at is not None

    def test_soft_delete_method(self):
        """测试 soft_delete() 直接写入删除时间"""
        article = SoftArticle(title="Test")
        article.save(True)

        article.soft_delete()
        article.save(True)

        assert article.is_deleted is True
        assert SoftArticle.get_all() == []

    def test_deactivate_hook(self):
        """测试停用钩子后查询包含已删除记录"""
        article = SoftArticle(title="Test")
        article.save(True)
        article.soft_delete()
        article.save(True)

        deactivate_soft_delete_hook()
        try:
            assert is_soft_delete_active() is False
            assert len(SoftArticle.get_all()) == 1
        finally:
            activate_soft_delete_hook()
        assert is_soft_delete_active() is True
        assert SoftArticle.get_all() == []


class TestSoftDeleteRewriter:
    """SoftDeleteRewriter 语句重写测试"""

    def test_select_filtered(self):
        """测试 SELECT 添加 deleted_at IS NULL"""
        rewriter = SoftDeleteRewriter()
        stmt = rewriter.rewrite_statement(select(SoftArticle))
        assert "deleted_at IS NULL" in _sql(stmt)

    def test_include_deleted_option(self):
        """测试 include_deleted 选项跳过过滤"""
        rewriter = SoftDeleteRewriter()
        stmt = select(SoftArticle).execution_options(include_deleted=True)
        assert "IS NULL" not in _sql(rewriter.rewrite_statement(stmt))

    def test_custom_option_name(self):
        """测试自定义选项名"""
        rewriter = SoftDeleteRewriter(disable_soft_delete_option_name="with_trash")
        stmt = select(SoftArticle).execution_options(with_trash=True)
        assert "IS NULL" not in _sql(rewriter.rewrite_statement(stmt))

    def test_aliased_table(self):
        """测试别名表的过滤条件作用在别名列上"""
        rewriter = SoftDeleteRewriter()
        alias = aliased(SoftArticle)
        sql = _sql(rewriter.rewrite_statement(select(alias)))
        assert "deleted_at IS NULL" in sql
        assert "test_soft_articles_1.deleted_at" in sql

    def test_subquery(self):
        """测试子查询内部被重写"""
        rewriter = SoftDeleteRewriter()
        sub = select(SoftArticle.id).subquery()
        sql = _sql(rewriter.rewrite_statement(select(sub.c.id)))
        assert "deleted_at IS NULL" in sql

    def test_ignored_table(self):
        """测试忽略的表不添加过滤"""
        rewriter = SoftDeleteRewriter(ignored_tables=[IgnoredTable(name="test_soft_articles")])
        assert "IS NULL" not in _sql(rewriter.rewrite_statement(select(SoftArticle)))

    def test_ignored_table_match(self):
        """测试 IgnoredTable 需要 schema 也匹配"""
        table = SoftArticle.__table__
        assert IgnoredTable(name="test_soft_articles").match_name(table) is True
        assert IgnoredTable(name="test_soft_articles", table_schema="other").match_name(table) is False
