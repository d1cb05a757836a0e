"""分类树模块

题库分类树引擎：父指针 + 物化路径存储的可变森林，提供结构查询、结构变更与统计。

使用示例:
    from qbtree.category import create_tree_engine

    engine = create_tree_engine()

    math = engine.mutations.create("Math", node_type_id=chapter.id)
    algebra = engine.mutations.create("Algebra", node_type_id=chapter.id, parent_id=math.id)
    engine.mutations.move(algebra.id, new_parent_id=None)

    snapshot = engine.queries.get_tree()
"""

from .models import TreeNodeType, TreeNode, NodeContentLink
from .locks import ParentLockRegistry
from .results import (
    TreeNodeView,
    TreeSnapshot,
    NodeStatistics,
    TreeStatistics,
    TreeValidationResult,
    ImportResult,
    TypeUsage,
)
from .schemas import NodeCreate, NodeMove, TreeDocumentNode, TreeDocument
from .services import (
    TreeServiceBase,
    NodeStore,
    ANY_PARENT,
    PathMaterializer,
    TypeRegistry,
    TreeMutationService,
    TreeQueryService,
    TreeDocumentService,
    TreeMaintenanceService,
)
from .engine import TreeEngine, create_tree_engine

__all__ = [
    # 模型
    "TreeNodeType",
    "TreeNode",
    "NodeContentLink",

    # 锁
    "ParentLockRegistry",

    # 结果对象
    "TreeNodeView",
    "TreeSnapshot",
    "NodeStatistics",
    "TreeStatistics",
    "TreeValidationResult",
    "ImportResult",
    "TypeUsage",

    # Schema
    "NodeCreate",
    "NodeMove",
    "TreeDocumentNode",
    "TreeDocument",

    # 服务
    "TreeServiceBase",
    "NodeStore",
    "ANY_PARENT",
    "PathMaterializer",
    "TypeRegistry",
    "TreeMutationService",
    "TreeQueryService",
    "TreeDocumentService",
    "TreeMaintenanceService",

    # 引擎
    "TreeEngine",
    "create_tree_engine",
]
