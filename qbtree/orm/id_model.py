"""ID模型基类

提供声明基类 Base 和整数自增主键。

使用说明：
    IdModel 是 CoreModel 的父类，只负责主键字段。
    一般情况下应使用 CoreModel 或 BaseModel，而不是直接使用 IdModel。
    树节点的物化路径由祖先 id 拼接而成，因此主键固定为整数。
"""

from __future__ import annotations

from sqlalchemy import Column, Integer
from sqlalchemy.orm import declared_attr, declarative_base, Mapped, mapped_column
from typing_extensions import dataclass_transform


# 声明基类
Base = declarative_base()


@dataclass_transform(kw_only_default=True, field_specifiers=(mapped_column,))
class IdModel(Base):
    """ID模型基类

    使用示例:
        class NodeContentLink(IdModel):
            __tablename__ = "node_content_link"
            node_id = Column(Integer)
    """
    __abstract__ = True

    id: Mapped[int]

    @declared_attr
    def id(cls):
        """整数自增主键"""
        return Column(Integer, primary_key=True, autoincrement=True, comment='主键ID')
