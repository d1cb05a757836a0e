"""ORM 扩展 - 软删除

使用示例:
    from qbtree.orm.orm_extensions import SimpleSoftDeleteMixin

    class TreeNode(CoreModel, SimpleSoftDeleteMixin):
        ...

    node.soft_delete()
    TreeNode.query.execution_options(include_deleted=True).all()
"""

from .soft_delete_rewriter import IgnoredTable, SoftDeleteRewriter
from .soft_delete_hook import (
    activate_soft_delete_hook,
    deactivate_soft_delete_hook,
    is_soft_delete_active,
)
from .soft_delete_mixin import SimpleSoftDeleteMixin

__all__ = [
    "IgnoredTable",
    "SoftDeleteRewriter",
    "activate_soft_delete_hook",
    "deactivate_soft_delete_hook",
    "is_soft_delete_active",
    "SimpleSoftDeleteMixin",
]
