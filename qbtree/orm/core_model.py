"""
ORM 核心模型

CoreModel 为分类树的各张表提供公共列（时间戳、软删除标记、乐观锁版本号）
和按对象保存 / 更新 / 删除的基本操作。
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, TYPE_CHECKING

from sqlalchemy import func, event, inspect
from sqlalchemy import Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, declared_attr, Session, Query

if TYPE_CHECKING:
    from typing_extensions import Self

from qbtree.log import get_logger

from .id_model import IdModel
from .transaction import get_current_transaction
from .utils import to_snake_case

_tx_logger = get_logger("qbtree.orm.transaction")


class CoreModel(IdModel):
    """分类树表的公共基类

    - 表名由类名转换（TreeNodeType → tree_node_type）
    - created_at / updated_at / deleted_at 时间列
    - ver 作为 SQLAlchemy 的 version_id_col，并发更新同一行时抛出 StaleDataError

    使用示例:
        class Subject(BaseModel):
            grade: Mapped[int] = mapped_column(Integer, default=1)

        Subject(name="Math").save(commit=True)
    """
    __abstract__ = True

    __allow_unmapped__ = True

    # init_database() 或测试夹具通过 scoped_session.query_property() 绑定
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]

    _session: Session = None

    @declared_attr.directive
    def __tablename__(cls) -> str:
        name = cls.__name__
        if '_' in name:
            raise ValueError(f'模型类名 {name} 不能包含下划线')
        return to_snake_case(name)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=True, onupdate=func.now(), comment="更新时间"
    )
    deleted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=True, default=None, comment="删除时间"
    )
    ver: Mapped[int] = mapped_column(Integer, default=1, nullable=False, comment="版本号")

    __mapper_args__ = {"version_id_col": ver}

    # 由数据库或 ORM 维护，构造时传入会被丢弃
    _managed_columns: ClassVar[frozenset] = frozenset(
        {'id', 'created_at', 'updated_at', 'deleted_at', 'ver'}
    )

    def __init__(self, **kwargs):
        super().__init__(**{k: v for k, v in kwargs.items() if k not in self._managed_columns})

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    def __getattribute__(self, name):
        # 新对象已加入 session 但还没有主键时，读取 id 先 flush
        value = super().__getattribute__(name)
        if name != 'id' or value is not None:
            return value

        state = super().__getattribute__('__dict__').get('_sa_instance_state')
        if state is None:
            return value
        session = state.session
        if session is not None and state.pending and not session._flushing:
            session.flush()
            return super().__getattribute__(name)
        return value

    @property
    def session(self) -> Session:
        """对象所用的 session：优先 query 绑定的 scoped session，其次 db_manager"""
        if self._session is None:
            query = getattr(type(self), 'query', None)
            if query is not None:
                self._session = query.session
            else:
                from .db_session import db_manager
                self._session = db_manager.get_session()
        return self._session

    # ==================== 基本操作 ====================

    def save(self, commit: bool = False) -> Self:
        """加入 session，commit=True 时提交（事务中只 flush）"""
        self.session.add(self)
        self._finish(commit)
        return self

    def update(self, commit: bool = False, **kwargs) -> Self:
        """按关键字参数修改已有属性；未知字段忽略

        使用示例:
            node.update(name="Algebra", is_visible=False, commit=True)
        """
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
        self._finish(commit)
        return self

    def delete(self, commit: bool = False):
        """删除对象；启用软删除钩子时转为设置 deleted_at"""
        self.session.delete(self)
        self._finish(commit)

    def refresh(self, attribute_names: list = None) -> Self:
        self.session.refresh(self, attribute_names)
        return self

    @classmethod
    def get(cls, id: int):
        """按主键读取，不存在（或已软删除）返回 None"""
        return cls.query.filter(cls.id == id).one_or_none()

    @classmethod
    def get_all(cls):
        return cls.query.all()

    def to_dict(self, exclude: set = None) -> dict:
        """列属性转字典"""
        skip = exclude or set()
        return {
            attr.key: getattr(self, attr.key)
            for attr in inspect(self).mapper.column_attrs
            if attr.key not in skip
        }

    def _finish(self, commit: bool) -> None:
        if not commit:
            return
        tx = get_current_transaction()
        if tx is not None and tx.should_suppress_commit():
            # 提交交给外层事务；flush 后刷新，让调用方拿到 id / created_at
            _tx_logger.debug(f"{type(self).__name__}: 事务中的 commit=True 改为 flush")
            self.session.flush()
            self.session.refresh(self)
            return
        self.session.commit()


# ==================== 事件监听器 ====================

@event.listens_for(Session, 'before_flush')
def skip_timestamp_only_updates(session, flush_context, instances):
    """只有 updated_at 变化的对象不写库，避免 ver 空涨"""
    unchanged = []
    for obj in list(session.dirty):
        if not isinstance(obj, CoreModel):
            continue
        insp = inspect(obj, raiseerr=False)
        if insp is None or insp.session is not session:
            continue
        changed = {attr.key for attr in insp.attrs if attr.history.has_changes()}
        # 空集不能跳过：关系集合变化也会让对象变 dirty
        if changed == {'updated_at'}:
            unchanged.append(obj)

    for obj in unchanged:
        session.expunge(obj)
