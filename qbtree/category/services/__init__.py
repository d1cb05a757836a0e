"""
分类树模块 - 服务层

按职责拆分的服务类：
- NodeStore: 节点持久化边界（读取、计数、批量路径写入）
- PathMaterializer: 物化路径 / 深度计算与级联重写
- TypeRegistry: 节点类型注册表
- TreeMutationService: 创建、更新、移动、排序、删除
- TreeQueryService: 只读查询与统计
- TreeDocumentService: 树文档导入导出
- TreeMaintenanceService: 完整性校验与修复
"""

from .base import TreeServiceBase
from .node_store import NodeStore, ANY_PARENT
from .path_materializer import PathMaterializer
from .type_registry import TypeRegistry
from .mutation_service import TreeMutationService
from .query_service import TreeQueryService
from .document_service import TreeDocumentService
from .maintenance_service import TreeMaintenanceService

__all__ = [
    "TreeServiceBase",
    "NodeStore",
    "ANY_PARENT",
    "PathMaterializer",
    "TypeRegistry",
    "TreeMutationService",
    "TreeQueryService",
    "TreeDocumentService",
    "TreeMaintenanceService",
]
