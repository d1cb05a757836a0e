"""
分类树模块 - 节点类型模型

节点类型是一张扁平的字典表，决定某类节点能否拥有子节点。
"""

from sqlalchemy import Boolean
from sqlalchemy.orm import Mapped, mapped_column

from qbtree.orm import BaseModel


class TreeNodeType(BaseModel):
    """节点类型

    字段说明:
        - code: 类型编码（未删除的类型中唯一）
        - name: 类型名称（未删除的类型中唯一，忽略大小写）
        - note: 备注
        - allows_children: 该类型的节点是否允许拥有子节点
        - is_active: 是否启用，停用的类型不能用于新建或移动节点
        - is_visible: 是否在前端展示
        - is_system: 系统内置类型，不允许修改、停用、隐藏和删除

    使用示例:
        chapter = TreeNodeType(code="chapter", name="章节", allows_children=True)
        chapter.save(commit=True)
    """

    allows_children: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, comment="是否允许子节点"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, comment="是否启用"
    )
    is_visible: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, comment="是否可见"
    )
    is_system: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="是否系统内置"
    )


__all__ = ["TreeNodeType"]
