"""树形结构扩展模块

提供通用的树形结构支持，使用物化路径（Materialized Path）模式。

主要组件:
- TreeFieldsMixin: 树形字段定义 Mixin（path / depth / order_index）
- TreeMixin: 基于路径的节点判断方法
- 工具函数: 扁平数据与嵌套树之间的转换、环检测

使用示例:
    from qbtree.orm import BaseModel
    from qbtree.orm.tree import TreeFieldsMixin, TreeMixin

    class Chapter(BaseModel, TreeFieldsMixin, TreeMixin):
        parent_id = mapped_column(Integer, ForeignKey("chapter.id"), nullable=True)

    chapter.get_path_ids()       # [1, 2, 5]
"""

from .tree_mixin import TreeMixin, split_path, join_path
from .tree_fields import TreeFieldsMixin
from .tree_utils import (
    build_child_index,
    build_tree_list,
    detect_parent_cycles,
)

__all__ = [
    # Mixin 类
    "TreeMixin",
    "TreeFieldsMixin",

    # 路径函数
    "split_path",
    "join_path",

    # 工具函数
    "build_child_index",
    "build_tree_list",
    "detect_parent_cycles",
]
