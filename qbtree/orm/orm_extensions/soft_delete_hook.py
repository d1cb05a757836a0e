"""软删除事件钩子"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.event import listens_for
from sqlalchemy.orm import Session

from .soft_delete_rewriter import IgnoredTable, SoftDeleteRewriter


# 全局重写器实例
global_rewriter: Optional[SoftDeleteRewriter] = None
_deleted_field_name: str = "deleted_at"
_listeners_registered: bool = False


def activate_soft_delete_hook(
    deleted_field_name: str = "deleted_at",
    disable_soft_delete_option_name: str = "include_deleted",
    ignored_tables: List[IgnoredTable] = None
):
    """激活软删除钩子

    注册 SQLAlchemy 事件监听器（只注册一次），自动：
    - 重写 SELECT 查询，过滤已软删除的记录
    - 将 session.delete() 转为软删除
    - 设置 created_at, updated_at 时间戳

    Args:
        deleted_field_name: 软删除字段名，默认"deleted_at"
        disable_soft_delete_option_name: 禁用软删除的option名称，默认"include_deleted"
        ignored_tables: 忽略软删除的表列表

    使用示例:
        from qbtree.orm.orm_extensions import activate_soft_delete_hook

        activate_soft_delete_hook()

        # 之后所有查询自动过滤已删除记录
        nodes = TreeNode.query.all()

        # 如需包含已删除记录
        nodes = TreeNode.query.execution_options(include_deleted=True).all()
    """
    global global_rewriter, _deleted_field_name, _listeners_registered

    global_rewriter = SoftDeleteRewriter(
        deleted_field_name=deleted_field_name,
        disable_soft_delete_option_name=disable_soft_delete_option_name,
        ignored_tables=ignored_tables or [],
    )
    _deleted_field_name = deleted_field_name

    if _listeners_registered:
        return
    _listeners_registered = True

    @listens_for(Session, "do_orm_execute")
    def _do_orm_execute(orm_execute_state):
        if global_rewriter is None:
            return
        # 刷新已加载对象的列（refresh / 过期属性加载）和关系加载不做过滤，
        # 否则刚软删除的对象在提交后无法读取自身属性
        if orm_execute_state.is_column_load or orm_execute_state.is_relationship_load:
            return
        if orm_execute_state.is_select or orm_execute_state.is_delete or orm_execute_state.is_update:
            orm_execute_state.statement = global_rewriter.rewrite_statement(
                orm_execute_state.statement
            )

    @listens_for(Session, "before_flush")
    def _before_flush(session, flush_context, instances):
        if global_rewriter is None:
            return
        now = datetime.now()

        for instance in session.new:
            if hasattr(instance, 'created_at'):
                instance.created_at = now

        for instance in session.dirty:
            # 只有列属性实际变更时才更新时间
            if hasattr(instance, 'updated_at') and session.is_modified(instance, include_collections=False):
                instance.updated_at = now

        # 物理删除转为软删除
        for instance in list(session.deleted):
            if hasattr(instance, _deleted_field_name):
                setattr(instance, _deleted_field_name, now)
                session.expunge(instance)
                session.add(instance)


def deactivate_soft_delete_hook():
    """停用软删除钩子

    SQLAlchemy 的事件监听器注册后无法移除，
    此函数将全局重写器设为 None，使监听器不再生效
    """
    global global_rewriter
    global_rewriter = None


def is_soft_delete_active() -> bool:
    """检查软删除钩子是否激活"""
    return global_rewriter is not None
