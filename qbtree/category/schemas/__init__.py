"""分类树模块 - Schema"""

from .node import NodeCreate, NodeMove
from .document import TreeDocumentNode, TreeDocument

__all__ = [
    "NodeCreate",
    "NodeMove",
    "TreeDocumentNode",
    "TreeDocument",
]
