"""
分类树模块 - 节点与题目的关联

题目与分类是多对多关系，题目本身由外部服务管理，这里只保存关联并用于计数。
"""

from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from qbtree.orm import CoreModel, SimpleSoftDeleteMixin


class NodeContentLink(CoreModel, SimpleSoftDeleteMixin):
    """节点-题目关联

    字段说明:
        - node_id: 分类节点ID
        - content_id: 外部题目ID
        - is_primary: 是否为题目的主分类
    """

    node_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tree_node.id"),
        nullable=False,
        index=True,
        comment="分类节点ID"
    )
    content_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True, comment="题目ID"
    )
    is_primary: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="是否主分类"
    )


__all__ = ["NodeContentLink"]
