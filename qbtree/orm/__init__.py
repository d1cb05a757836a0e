"""ORM模块

提供树形分类引擎的持久化基础：
- CoreModel: 核心模型基类，包含ID、时间戳、版本控制、CRUD等
- BaseModel: 业务模型基类，继承CoreModel，添加name/code/note/caption等常用字段
- AuditFieldsMixin: 操作人字段
- 数据库会话管理
- 软删除扩展
- 事务管理
- 树形结构扩展

使用示例:
    from qbtree.orm import BaseModel, init_database, db_session_scope

    init_database("sqlite:///./question_bank.db", create_tables=True)

    with db_session_scope():
        types = TreeNodeType.get_all()
"""

from .id_model import IdModel, Base
from .core_model import CoreModel
from .base_model import BaseModel
from .audit_fields import AuditFieldsMixin
from .utils import to_snake_case
from .db_session import (
    # 管理器单例
    db_manager,
    # 公开 API
    init_database,
    get_engine,
    on_request_end,
    db_session_scope,
)

# 软删除扩展
from .orm_extensions import (
    IgnoredTable,
    SoftDeleteRewriter,
    activate_soft_delete_hook,
    deactivate_soft_delete_hook,
    is_soft_delete_active,
    SimpleSoftDeleteMixin,
)

# 事务管理
from .transaction import (
    TransactionState,
    TransactionError,
    TransactionClosedError,
    TransactionContext,
    TransactionManager,
    transaction_manager,
    get_current_transaction,
)

# 树形结构扩展
from .tree import (
    TreeMixin,
    TreeFieldsMixin,
    split_path,
    join_path,
    build_child_index,
    build_tree_list,
    detect_parent_cycles,
)

__all__ = [
    # Models
    "IdModel",
    "Base",
    "CoreModel",
    "BaseModel",
    "AuditFieldsMixin",
    "to_snake_case",

    # Session
    "db_manager",
    "init_database",
    "get_engine",
    "on_request_end",
    "db_session_scope",

    # Soft Delete Extensions
    "IgnoredTable",
    "SoftDeleteRewriter",
    "activate_soft_delete_hook",
    "deactivate_soft_delete_hook",
    "is_soft_delete_active",
    "SimpleSoftDeleteMixin",

    # Transaction Management
    "TransactionState",
    "TransactionError",
    "TransactionClosedError",
    "TransactionContext",
    "TransactionManager",
    "transaction_manager",
    "get_current_transaction",

    # Tree Structure Extensions
    "TreeMixin",
    "TreeFieldsMixin",
    "split_path",
    "join_path",
    "build_child_index",
    "build_tree_list",
    "detect_parent_cycles",
]
