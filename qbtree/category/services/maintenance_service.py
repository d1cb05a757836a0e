"""
分类树模块 - 维护服务

完整性校验与显式修复。查询服务从不修改数据，所有修复都在这里以独立事务执行。
"""

from collections import Counter
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

from qbtree.log import get_logger
from qbtree.orm.tree import build_child_index, detect_parent_cycles

from ..locks import ParentLockRegistry
from ..results import TreeValidationResult, breadth_first
from .base import TreeServiceBase
from .node_store import NodeStore
from .path_materializer import PathMaterializer
from .type_registry import TypeRegistry

logger = get_logger()


class TreeMaintenanceService(TreeServiceBase):
    """树维护服务

    使用示例:
        report = engine.maintenance.validate_integrity()
        if not report.is_valid:
            engine.maintenance.rebuild_paths()

        engine.maintenance.normalize_order(parent_id=1)
        engine.maintenance.recalculate_content_counts()
    """

    def __init__(
        self,
        store: NodeStore,
        materializer: PathMaterializer,
        types: TypeRegistry,
        locks: ParentLockRegistry = None,
        settings=None,
    ):
        super().__init__(settings or store.settings)
        self.store = store
        self.materializer = materializer
        self.types = types
        self.locks = locks or ParentLockRegistry(self.settings.lock_timeout)

    def _expected_layout(self, nodes: List) -> Dict[int, Tuple[str, int]]:
        """从根开始按层计算每个可达节点应有的 (path, depth)"""
        index = build_child_index(nodes)
        by_id = {node.id: node for node in nodes}
        expected: Dict[int, Tuple[str, int]] = {}
        for node_id in breadth_first(index, list(index.get(None, []))):
            node = by_id[node_id]
            if node.parent_id is None:
                expected[node_id] = self.materializer.verify(node, None)
                continue
            parent_path, parent_depth = expected[node.parent_id]
            parent = SimpleNamespace(id=node.parent_id, path=parent_path, depth=parent_depth)
            expected[node_id] = self.materializer.verify(node, parent)
        return expected

    # ==================== 校验 ====================

    def validate_integrity(self) -> TreeValidationResult:
        """校验整片森林

        错误：孤儿节点、父指针环、path / depth 不一致、同级 order_index 重复
        警告：同级 order_index 不连续、父节点类型不允许子节点、节点类型停用或缺失
        """
        result = TreeValidationResult()
        nodes = self.store.list_all()
        by_id = {node.id: node for node in nodes}
        result.checked = len(nodes)

        for node in nodes:
            if node.parent_id is not None and node.parent_id not in by_id:
                result.add_error(f"节点 {node.id} 的父节点 {node.parent_id} 不存在或已删除")

        parent_map = {node.id: node.parent_id for node in nodes}
        for cycle in detect_parent_cycles(parent_map):
            result.add_error(f"父指针存在环: {cycle}")

        expected = self._expected_layout(nodes)
        for node in nodes:
            if node.id not in expected:
                continue
            path, depth = expected[node.id]
            if (node.path or "") != path:
                result.add_error(f"节点 {node.id} 路径不一致: {node.path!r}，应为 {path!r}")
            if node.depth != depth:
                result.add_error(f"节点 {node.id} 深度不一致: {node.depth}，应为 {depth}")

        siblings: Dict[Optional[int], List[int]] = {}
        for node in nodes:
            siblings.setdefault(node.parent_id, []).append(node.order_index)
        for parent_id, indexes in siblings.items():
            duplicates = sorted(i for i, n in Counter(indexes).items() if n > 1)
            if duplicates:
                result.add_error(f"父节点 {parent_id} 下 order_index 重复: {duplicates}")
            elif sorted(indexes) != list(range(1, len(indexes) + 1)):
                result.add_warning(f"父节点 {parent_id} 下 order_index 不连续")

        node_types = {t.id: t for t in self.types.list_types()}
        for node in nodes:
            node_type = node_types.get(node.node_type_id)
            if node_type is None:
                result.add_warning(f"节点 {node.id} 的类型 {node.node_type_id} 不存在")
            elif not node_type.is_active:
                result.add_warning(f"节点 {node.id} 的类型 {node_type.code} 已停用")
        for parent_id in siblings:
            parent = by_id.get(parent_id)
            if parent is None:
                continue
            parent_type = node_types.get(parent.node_type_id)
            if parent_type is not None and not parent_type.allows_children:
                result.add_warning(f"节点 {parent_id} 的类型 {parent_type.code} 不允许子节点，但存在子节点")

        logger.info(
            f"完整性校验: 检查 {result.checked} 个节点, "
            f"{len(result.errors)} 个错误, {len(result.warnings)} 个警告"
        )
        return result

    # ==================== 修复 ====================

    def rebuild_paths(self) -> int:
        """从根开始重算全部可达节点的 path / depth

        Returns:
            变更的行数
        """
        with self.atomic("重建路径"):
            nodes = self.store.list_all()
            changed = self.store.update_many_paths(self._expected_layout(nodes), nodes)
        logger.info(f"重建路径: 变更 {changed} 行")
        return changed

    def normalize_order(self, parent_id: Optional[int] = None, actor: Optional[str] = None) -> int:
        """将子节点的 order_index 重排为连续的 1..n（保持原有相对顺序）

        Returns:
            变更的行数
        """
        changed = 0
        with self.locks.hold(parent_id):
            with self.atomic("整理排序号"):
                for index, child in enumerate(self.store.get_children(parent_id), start=1):
                    if child.order_index != index:
                        child.order_index = index
                        child.touch(actor)
                        changed += 1
        logger.info(f"整理排序号: parent_id={parent_id}, 变更 {changed} 行")
        return changed

    def recalculate_content_counts(self) -> int:
        """按关联表重算 content_count

        Returns:
            变更的行数
        """
        changed = 0
        with self.atomic("重算题目数"):
            counts = self.store.content_count_by_node()
            for node in self.store.list_all():
                expected = counts.get(node.id, 0)
                if node.content_count != expected:
                    node.content_count = expected
                    changed += 1
        logger.info(f"重算题目数: 变更 {changed} 行")
        return changed


__all__ = ["TreeMaintenanceService"]
