"""分类树模块 - 模型"""

from .node_type import TreeNodeType
from .tree_node import TreeNode
from .content_link import NodeContentLink

__all__ = [
    "TreeNodeType",
    "TreeNode",
    "NodeContentLink",
]
