"""软删除 Mixin

deleted_at 列由 CoreModel 定义，这里只提供 soft_delete() / is_deleted，
并在导入时激活软删除钩子。
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from .soft_delete_hook import activate_soft_delete_hook

activate_soft_delete_hook()


class SimpleSoftDeleteMixin:
    """软删除 Mixin

    - session.delete(obj) 被钩子改写为设置 deleted_at
    - 普通查询自动过滤 deleted_at 非空的行，
      需要包含已删除行时使用 execution_options(include_deleted=True)

    分类树不提供恢复已删除节点的操作，因此没有 undelete。
    """
    deleted_at: Optional[datetime]

    def soft_delete(self, when: Optional[datetime] = None) -> None:
        """标记为已删除，不传时间时使用当前时间"""
        self.deleted_at = when or datetime.now()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
