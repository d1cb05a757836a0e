"""
分类树模块 - 树节点模型

题库分类树的节点。节点以 parent_id 指针加物化路径存储：
path 只记录祖先 id（如 "-1-7-"），根节点 path 为空串、depth 为 0。

结构字段（parent_id / path / depth / order_index）只由 TreeMutationService 写入。
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from qbtree.orm import BaseModel, AuditFieldsMixin
from qbtree.orm.tree import TreeFieldsMixin, TreeMixin


class TreeNode(BaseModel, AuditFieldsMixin, TreeFieldsMixin, TreeMixin):
    """分类树节点

    字段说明:
        - parent_id: 父节点ID（为空表示根节点）
        - node_type_id: 节点类型ID
        - name / code: 名称与业务编码，在同一父节点下唯一
        - description: 描述
        - path / depth / order_index: 物化路径、深度、同级序号（来自 TreeFieldsMixin）
        - is_active / is_visible: 生命周期标志
        - content_count: 直接关联的题目数量（冗余缓存，可由维护任务修复）
        - created_by / updated_by: 操作人（来自 AuditFieldsMixin）
        - ver: 乐观锁版本号，每次写入自动递增（来自 CoreModel）

    使用示例:
        node = engine.mutations.create("Algebra", node_type_id=1, parent_id=1, actor="admin")
        node.path            # "-1-"
        node.get_path_ids()  # [1, 2]
    """

    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("tree_node.id"),
        nullable=True,
        default=None,
        comment="父节点ID"
    )
    node_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tree_node_type.id"),
        nullable=False,
        index=True,
        comment="节点类型ID"
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, default=None, comment="描述"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, comment="是否启用"
    )
    is_visible: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, comment="是否可见"
    )
    content_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False, comment="直接关联的题目数量"
    )

    __table_args__ = (
        Index("ix_tree_node_parent_order", "parent_id", "order_index"),
    )


__all__ = ["TreeNode"]
