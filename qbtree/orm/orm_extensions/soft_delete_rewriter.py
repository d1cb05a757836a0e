"""SQL查询重写器 - 软删除过滤"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar, Union, List, Optional

from sqlalchemy import Table
from sqlalchemy.orm import FromStatement
from sqlalchemy.orm.util import _ORMJoin
from sqlalchemy.sql import Alias, CompoundSelect, Executable, Join, Delete, Update, Select, Subquery, TableClause
from sqlalchemy.sql.elements import TextClause

Statement = TypeVar('Statement', bound=Union[Select, FromStatement, CompoundSelect, Executable])


@dataclass
class IgnoredTable:
    """定义需要忽略软删除过滤的表

    使用示例:
        from qbtree.orm.orm_extensions import IgnoredTable

        ignored_tables = [IgnoredTable(name='import_journal')]
    """
    name: str
    table_schema: Optional[str] = None

    def match_name(self, table: Table) -> bool:
        """表名和 schema 都匹配时返回 True"""
        return self.name == table.name and self.table_schema == table.schema


class SoftDeleteRewriter:
    """SQL查询重写器

    自动为查询添加 ``deleted_at IS NULL`` 过滤条件：
    - SELECT 查询自动过滤已删除记录（含子查询、JOIN、别名表）
    - 可通过 execution_options(include_deleted=True) 关闭过滤

    使用示例:
        rewriter = SoftDeleteRewriter(deleted_field_name="deleted_at")

        # 包含已删除节点（维护任务使用）
        TreeNode.query.execution_options(include_deleted=True).all()
    """

    def __init__(
            self,
            deleted_field_name: str = "deleted_at",
            disable_soft_delete_option_name: str = "include_deleted",
            ignored_tables: List[IgnoredTable] = None,
    ):
        self.ignored_tables = ignored_tables or []
        self.deleted_field_name = deleted_field_name
        self.disable_soft_delete_option_name = disable_soft_delete_option_name

    def rewrite_statement(self, stmt: Statement) -> Statement:
        """重写SQL语句

        支持的语句类型：Select、Delete、Update、CompoundSelect、FromStatement
        """
        if isinstance(stmt, Select):
            return self.rewrite_select(stmt)

        if isinstance(stmt, Delete):
            return self.rewrite_dml(stmt)

        if isinstance(stmt, Update):
            return self.rewrite_dml(stmt)

        if isinstance(stmt, CompoundSelect):
            return self.rewrite_compound_select(stmt)

        if isinstance(stmt, FromStatement):
            if not isinstance(stmt.element, Select):
                return stmt
            stmt.element = self.rewrite_select(stmt.element)
            return stmt

        raise NotImplementedError(f"不支持的语句类型: {type(stmt)}")

    def rewrite_select(self, stmt: Select) -> Select:
        """重写SELECT语句"""
        if stmt.get_execution_options().get(self.disable_soft_delete_option_name):
            return stmt

        for from_obj in stmt.get_final_froms():
            stmt = self._analyze_from(stmt, from_obj)

        return stmt

    def rewrite_compound_select(self, stmt: CompoundSelect) -> CompoundSelect:
        """重写复合SELECT语句（UNION等）"""
        for i in range(len(stmt.selects)):
            stmt.selects[i] = self.rewrite_select(stmt.selects[i])
        return stmt

    def rewrite_dml(self, stmt: Union[Delete, Update]) -> Union[Delete, Update]:
        """重写批量 DELETE / UPDATE 语句，只作用于未删除的行"""
        if stmt.get_execution_options().get(self.disable_soft_delete_option_name):
            return stmt

        column_obj = stmt.table.columns.get(self.deleted_field_name)
        if column_obj is None:
            return stmt

        return stmt.where(column_obj.is_(None))

    def _rewrite_element(self, subquery: Subquery) -> Subquery:
        """重写子查询"""
        if isinstance(subquery.element, CompoundSelect):
            subquery.element = self.rewrite_compound_select(subquery.element)
            return subquery

        if isinstance(subquery.element, Select):
            subquery.element = self.rewrite_select(subquery.element)
            return subquery

        raise NotImplementedError(f"不支持的子查询类型: {type(subquery.element)}")

    def _rewrite_from_orm_join(self, stmt: Select, join_obj: Union[_ORMJoin, Join]) -> Select:
        """处理JOIN查询"""
        for side in (join_obj.left, join_obj.right):
            if isinstance(side, (_ORMJoin, Join)):
                stmt = self._rewrite_from_orm_join(stmt, side)
            else:
                stmt = self._analyze_from(stmt, side)
        return stmt

    def _analyze_from(self, stmt: Select, from_obj) -> Select:
        """分析FROM子句"""
        if isinstance(from_obj, Table):
            return self._rewrite_from_table(stmt, from_obj, from_obj)

        if isinstance(from_obj, (_ORMJoin, Join)):
            return self._rewrite_from_orm_join(stmt, from_obj)

        if isinstance(from_obj, Subquery):
            self._rewrite_element(from_obj)
            return stmt

        if isinstance(from_obj, Alias):
            if isinstance(from_obj.element, Table):
                # aliased(TreeNode) 产生的别名表，过滤条件作用在别名列上
                return self._rewrite_from_table(stmt, from_obj.element, from_obj)
            if isinstance(from_obj.element, Subquery):
                self._rewrite_element(from_obj.element)
                return stmt
            raise NotImplementedError(f"不支持的Alias内部类型: {type(from_obj.element)}")

        if isinstance(from_obj, (TableClause, TextClause)):
            # 原始SQL文本，无法处理
            return stmt

        raise NotImplementedError(f"不支持的FROM类型: {type(from_obj)}")

    def _rewrite_from_table(self, stmt: Select, table: Table, selectable) -> Select:
        """为表添加软删除过滤条件"""
        if any(ignored.match_name(table) for ignored in self.ignored_tables):
            return stmt

        column_obj = selectable.columns.get(self.deleted_field_name)
        if column_obj is None:
            return stmt

        return stmt.filter(column_obj.is_(None))
