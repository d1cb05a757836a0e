"""
分类树模块 - 引擎装配

TreeEngine 把各个服务围绕同一份 TreeSettings 和同一个 ParentLockRegistry 组装起来。
"""

from dataclasses import dataclass

from qbtree.config import TreeSettings
from qbtree.log import get_logger
from qbtree.orm import activate_soft_delete_hook, is_soft_delete_active

from .locks import ParentLockRegistry
from .services import (
    NodeStore,
    PathMaterializer,
    TypeRegistry,
    TreeMutationService,
    TreeQueryService,
    TreeDocumentService,
    TreeMaintenanceService,
)

logger = get_logger()


@dataclass
class TreeEngine:
    """分类树引擎

    Attributes:
        settings: 引擎配置
        locks: 同级锁注册表
        store: 节点存储
        materializer: 物化路径计算
        types: 节点类型注册表
        queries: 只读查询
        mutations: 结构变更
        documents: 导入导出
        maintenance: 校验与修复
    """
    settings: TreeSettings
    locks: ParentLockRegistry
    store: NodeStore
    materializer: PathMaterializer
    types: TypeRegistry
    queries: TreeQueryService
    mutations: TreeMutationService
    documents: TreeDocumentService
    maintenance: TreeMaintenanceService


def create_tree_engine(settings: TreeSettings = None) -> TreeEngine:
    """创建分类树引擎

    需要先通过 init_database() 或测试夹具设置好 CoreModel.query。
    未激活软删除钩子时自动激活。

    使用示例:
        from qbtree.orm import init_database, db_session_scope
        from qbtree.category import create_tree_engine

        init_database("sqlite:///./question_bank.db", create_tables=True)
        engine = create_tree_engine(TreeSettings(max_depth=6))

        with db_session_scope():
            chapter = engine.types.create_type("chapter", "章节")
            math = engine.mutations.create("Math", node_type_id=chapter.id, actor="admin")

    Raises:
        ValueError: path_separator 与节点模型使用的分隔符不一致
    """
    settings = settings or TreeSettings()
    if settings.path_separator != NodeStore.node_model.PATH_SEPARATOR:
        raise ValueError(
            f"path_separator={settings.path_separator!r} 与 "
            f"{NodeStore.node_model.__name__}.PATH_SEPARATOR="
            f"{NodeStore.node_model.PATH_SEPARATOR!r} 不一致"
        )

    if not is_soft_delete_active():
        activate_soft_delete_hook()

    locks = ParentLockRegistry(timeout=settings.lock_timeout)
    store = NodeStore(settings)
    materializer = PathMaterializer(store, settings)
    types = TypeRegistry(settings)
    queries = TreeQueryService(store, settings)
    mutations = TreeMutationService(store, materializer, types, locks, settings)
    documents = TreeDocumentService(queries, mutations, types, settings)
    maintenance = TreeMaintenanceService(store, materializer, types, locks, settings)

    logger.debug(f"分类树引擎已创建: {settings!r}")
    return TreeEngine(
        settings=settings,
        locks=locks,
        store=store,
        materializer=materializer,
        types=types,
        queries=queries,
        mutations=mutations,
        documents=documents,
        maintenance=maintenance,
    )


__all__ = ["TreeEngine", "create_tree_engine"]
