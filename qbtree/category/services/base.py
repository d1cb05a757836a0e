"""
分类树模块 - 服务基类

所有分类树服务共享的模型配置、session 获取和原子写入上下文。
"""

from contextlib import contextmanager
from typing import Type

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from qbtree.config import TreeSettings
from qbtree.exceptions import Err, STORE_ERRORS, StoreUnavailableException
from qbtree.log import get_logger
from qbtree.orm import BaseModel, CoreModel, transaction_manager

from ..models import TreeNode, TreeNodeType, NodeContentLink

logger = get_logger()


class TreeServiceBase:
    """分类树服务基类

    模型类以类属性配置，业务项目可以继承后替换为自己的模型：

        class ChapterStore(NodeStore):
            node_model = Chapter
            type_model = ChapterType
    """

    node_model: Type[BaseModel] = TreeNode
    type_model: Type[BaseModel] = TreeNodeType
    link_model: Type[CoreModel] = NodeContentLink

    def __init__(self, settings: TreeSettings = None):
        if self.node_model is None:
            raise ValueError("请在子类中配置 node_model")
        self.settings = settings or TreeSettings()

    @property
    def session(self) -> Session:
        """当前调用的 session（与 node_model.query 共用同一个 scoped session）"""
        return self.node_model.query.session

    @contextmanager
    def atomic(self, operation: str):
        """原子写入上下文

        在 transaction_manager 事务中执行，退出前 flush，正常结束时提交，异常时整体回滚。
        已处于外层事务时加入外层事务，由外层统一提交。

        - 乐观锁冲突（StaleDataError）转换为 ConcurrencyConflictException
        - 连接类异常转换为 StoreUnavailableException

        使用示例:
            with self.atomic("移动节点"):
                node.parent_id = new_parent_id
                ...
        """
        try:
            with transaction_manager.transaction(session=self.session):
                yield
                self.session.flush()
        except StaleDataError as e:
            logger.info(f"{operation}: 乐观锁冲突，已回滚")
            raise Err.version_conflict(
                f"{operation}失败：数据已被其他操作修改，请刷新后重试"
            ) from e
        except STORE_ERRORS as e:
            logger.warning(f"{operation}: 存储不可用，已回滚 ({type(e).__name__})")
            raise StoreUnavailableException(
                f"{operation}失败：存储暂时不可用",
                details=[str(getattr(e, "orig", None) or e)],
            ) from e


__all__ = ["TreeServiceBase"]
