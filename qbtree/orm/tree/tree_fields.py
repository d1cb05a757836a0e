"""树形结构字段定义

提供物化路径所需的标准字段定义 Mixin，简化模型定义。

使用示例:
    from qbtree.orm import BaseModel
    from qbtree.orm.tree import TreeFieldsMixin, TreeMixin

    class Chapter(BaseModel, TreeFieldsMixin, TreeMixin):
        # parent_id 需要自行定义（外键目标表名不同）
        parent_id = mapped_column(Integer, ForeignKey("chapter.id"), nullable=True)
"""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column


class TreeFieldsMixin:
    """树形结构字段 Mixin

    提供标准的树形字段定义，包括：
    - path: 祖先 id 链（如 "-1-7-"），根节点为空串
    - depth: 节点深度（根节点为0）
    - order_index: 同级排序序号（从1开始）

    注意：
    - parent_id 字段需要自行定义，因为外键目标表名因模型而异
    - 继承顺序：TreeFieldsMixin 应在 TreeMixin 之前
    """

    # 只包含祖先，不包含自身；子孙节点的 path 都以 "自身path + 自身id + 分隔符" 开头
    # 深度不设上限，使用不限长度的 Text
    path: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        index=True,
        comment="祖先路径（如 -1-7-）"
    )

    depth: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        index=True,
        comment="节点深度（根节点为0）"
    )

    order_index: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="同级排序序号"
    )


__all__ = [
    "TreeFieldsMixin",
]
