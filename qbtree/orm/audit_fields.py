"""操作人审计字段

为模型提供 created_by / updated_by 两个字段，记录最后一次写入的操作人。
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column


class AuditFieldsMixin:
    """操作人字段 Mixin

    使用示例:
        class TreeNode(BaseModel, AuditFieldsMixin):
            ...

        node.touch("editor-01", created=True)
    """

    created_by: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, default=None, comment="创建人"
    )
    updated_by: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, default=None, comment="最后修改人"
    )

    def touch(self, actor: Optional[str], created: bool = False) -> None:
        """记录操作人

        Args:
            actor: 操作人标识，为空时不修改
            created: 是否同时写入创建人
        """
        if actor is None:
            return
        if created:
            self.created_by = actor
        self.updated_by = actor
