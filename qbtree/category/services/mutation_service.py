"""
分类树模块 - 树结构变更服务

parent_id / path / depth / order_index 只由本服务写入。

每个写操作：
- 显式接收操作人 actor，写入 created_by / updated_by
- 所有结构校验在任何写入之前完成
- 在一个事务中执行，要么全部提交，要么全部回滚
- 涉及兄弟集合（create / move / reorder）时持有对应父节点的同级锁
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from qbtree.config import TreeSettings
from qbtree.exceptions import Err, ErrorCode
from qbtree.log import get_logger

from ..locks import ParentLockRegistry
from ..schemas import NodeCreate, NodeMove
from .base import TreeServiceBase
from .node_store import NodeStore
from .path_materializer import PathMaterializer
from .type_registry import TypeRegistry

logger = get_logger()

# update() 允许修改的内容字段
UPDATABLE_NODE_FIELDS = {"name", "code", "description", "is_active", "is_visible", "node_type_id"}

# 只能通过 move / reorder 修改的结构字段
STRUCTURAL_FIELDS = {"parent_id", "path", "depth", "order_index"}


def _validate_items(items: Iterable[Union[Dict[str, Any], Any]], schema) -> List:
    validated = []
    errors = []
    for i, item in enumerate(items):
        if isinstance(item, schema):
            validated.append(item)
            continue
        try:
            validated.append(schema.model_validate(item))
        except PydanticValidationError as e:
            for err in e.errors():
                loc = ".".join(str(part) for part in err["loc"])
                errors.append(f"第 {i + 1} 项 {loc}: {err['msg']}")
    if errors:
        raise Err.invalid("批量数据验证失败", details=errors)
    return validated


class TreeMutationService(TreeServiceBase):
    """树结构变更服务

    使用示例:
        mutations = engine.mutations

        math = mutations.create("Math", node_type_id=chapter.id, actor="admin")
        algebra = mutations.create("Algebra", node_type_id=chapter.id, parent_id=math.id)

        mutations.move(algebra.id, new_parent_id=None)            # 移动为根节点
        mutations.reorder(None, [algebra.id, math.id])
        mutations.delete(math.id, cascade=True, actor="admin")
    """

    def __init__(
        self,
        store: NodeStore,
        materializer: PathMaterializer,
        types: TypeRegistry,
        locks: ParentLockRegistry = None,
        settings: TreeSettings = None,
    ):
        super().__init__(settings or store.settings)
        self.store = store
        self.materializer = materializer
        self.types = types
        self.locks = locks or ParentLockRegistry(self.settings.lock_timeout)

    # ==================== 校验工具 ====================

    def _require_node(self, node_id: int):
        node = self.store.get_by_id(node_id)
        if node is None:
            raise Err.node_not_found(node_id)
        return node

    def require_parent(self, parent_id: Optional[int]):
        if parent_id is None:
            return None
        parent = self.store.get_by_id(parent_id)
        if parent is None:
            raise Err.not_found(
                f"父节点不存在: {parent_id}",
                code=ErrorCode.PARENT_NOT_FOUND,
                resource_type="TreeNode",
                resource_id=parent_id,
            )
        return parent

    def _require_active_type(self, type_id: int):
        node_type = self.types.require_type(type_id)
        if not node_type.is_active:
            raise Err.type_not_allowed(f"节点类型已停用: {node_type.code}", type_id=type_id)
        return node_type

    def _check_parent_allows_children(self, parent):
        if parent is None:
            return
        parent_type = self.types.get_type(parent.node_type_id)
        if parent_type is None or not parent_type.allows_children:
            raise Err.type_not_allowed(
                f"父节点 {parent.id} 的类型不允许拥有子节点",
                parent_id=parent.id,
            )

    def _check_depth(self, depth: int):
        max_depth = self.settings.max_depth
        if max_depth is not None and depth > max_depth:
            raise Err.invalid(f"节点深度 {depth} 超过上限 {max_depth}", depth=depth)

    def names_match(self, a: Optional[str], b: Optional[str]) -> bool:
        if a is None or b is None:
            return False
        if self.settings.case_insensitive_names:
            return a.casefold() == b.casefold()
        return a == b

    def _check_sibling_unique(
        self,
        parent_id: Optional[int],
        name: Optional[str] = None,
        code: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ):
        for sibling in self.store.get_children(parent_id):
            if sibling.id == exclude_id:
                continue
            if name is not None and self.names_match(sibling.name, name):
                raise Err.duplicate_sibling(
                    f"同级节点中已存在名称: {name}",
                    parent_id=parent_id,
                    field="name",
                    conflict_id=sibling.id,
                )
            if code and sibling.code == code:
                raise Err.duplicate_sibling(
                    f"同级节点中已存在编码: {code}",
                    parent_id=parent_id,
                    field="code",
                    conflict_id=sibling.id,
                )

    @staticmethod
    def _check_version(node, expected_version: Optional[int]):
        if expected_version is not None and node.ver != expected_version:
            raise Err.version_conflict(
                f"节点 {node.id} 已被修改（期望版本 {expected_version}，当前版本 {node.ver}）",
                node_id=node.id,
                expected_version=expected_version,
                actual_version=node.ver,
            )

    @staticmethod
    def _check_order_index(order_index: Optional[int]):
        if order_index is not None and order_index < 1:
            raise Err.invalid("排序号必须大于等于 1", order_index=order_index)

    def _claim_order_index(
        self,
        parent_id: Optional[int],
        order_index: Optional[int],
        exclude_id: Optional[int] = None
    ) -> int:
        """返回可用的 order_index，显式指定且被占用时后移占用者及其后的兄弟"""
        if order_index is None:
            return self.store.max_order_index_under(parent_id) + 1
        if self.store.order_index_taken(parent_id, order_index, exclude_id):
            self.store.shift_order_indexes(parent_id, order_index, exclude_id=exclude_id)
        return order_index

    # ==================== 创建 ====================

    def create(
        self,
        name: str,
        node_type_id: int,
        parent_id: Optional[int] = None,
        code: Optional[str] = None,
        description: Optional[str] = None,
        order_index: Optional[int] = None,
        is_active: bool = True,
        is_visible: bool = True,
        actor: Optional[str] = None,
    ):
        """创建节点

        Args:
            name: 节点名称（同级唯一，默认忽略大小写）
            node_type_id: 节点类型ID
            parent_id: 父节点ID，为空表示创建根节点
            code: 业务编码（同级唯一）
            order_index: 同级序号，为空时追加到末尾；与已有兄弟冲突时兄弟依次后移
            actor: 操作人

        Returns:
            已持久化的节点

        Raises:
            ValidationException: 名称为空、序号非法、超过最大深度
            ResourceNotFoundException: 类型或父节点不存在
            TypeNotAllowedException: 类型已停用，或父节点类型不允许子节点
            DuplicateSiblingException: 同级名称或编码重复
        """
        name = (name or "").strip()
        if not name:
            raise Err.invalid("节点名称不能为空")
        self._check_order_index(order_index)

        with self.locks.hold(parent_id):
            with self.atomic("创建节点"):
                self._require_active_type(node_type_id)
                parent = self.require_parent(parent_id)
                self._check_parent_allows_children(parent)
                self._check_depth(self.materializer.child_depth(parent))
                self._check_sibling_unique(parent_id, name, code)

                node = self.node_model(
                    name=name,
                    code=code,
                    description=description,
                    node_type_id=node_type_id,
                    parent_id=parent_id,
                    is_active=is_active,
                    is_visible=is_visible,
                )
                node.order_index = self._claim_order_index(parent_id, order_index)
                self.materializer.assign(node, parent)
                node.touch(actor, created=True)
                self.store.create(node)

        logger.info(f"创建节点: id={node.id}, name={name!r}, parent_id={parent_id}, actor={actor}")
        return node

    # ==================== 内容更新 ====================

    def update(self, node_id: int, expected_version: Optional[int] = None, actor: Optional[str] = None, **fields):
        """更新节点内容字段

        不修改 parent_id / path / depth / order_index，这些字段只能通过 move / reorder 修改。

        Raises:
            ValidationException: 包含结构字段或未知字段、名称为空
            DuplicateSiblingException: 新名称或编码与兄弟重复
            TypeNotAllowedException: 新类型已停用，或新类型不允许子节点而节点已有子节点
            ConcurrencyConflictException: 版本不一致
        """
        structural = STRUCTURAL_FIELDS & set(fields)
        if structural:
            raise Err.invalid(
                f"结构字段只能通过 move / reorder 修改: {', '.join(sorted(structural))}"
            )
        unknown = set(fields) - UPDATABLE_NODE_FIELDS
        if unknown:
            raise Err.invalid(f"不允许修改的字段: {', '.join(sorted(unknown))}")
        if "name" in fields:
            fields["name"] = (fields["name"] or "").strip()
            if not fields["name"]:
                raise Err.invalid("节点名称不能为空")

        with self.atomic("更新节点"):
            node = self._require_node(node_id)
            self._check_version(node, expected_version)

            if "name" in fields or "code" in fields:
                self._check_sibling_unique(
                    node.parent_id,
                    name=fields.get("name"),
                    code=fields.get("code"),
                    exclude_id=node.id,
                )

            new_type_id = fields.get("node_type_id")
            if new_type_id is not None and new_type_id != node.node_type_id:
                new_type = self._require_active_type(new_type_id)
                if not new_type.allows_children and self.store.has_children(node.id):
                    raise Err.type_not_allowed(
                        f"节点 {node.id} 已有子节点，不能改为不允许子节点的类型 {new_type.code}",
                        node_id=node.id,
                        type_id=new_type_id,
                    )

            for key, value in fields.items():
                setattr(node, key, value)
            node.touch(actor)
            self.store.update(node)

        logger.info(f"更新节点: id={node_id}, 字段={sorted(fields)}, actor={actor}")
        return node

    # ==================== 移动 ====================

    def _lineage(self, parent_id: Optional[int]) -> List[int]:
        """父节点及其全部祖先的ID，根节点集合返回空列表"""
        if parent_id is None:
            return []
        parent = self.store.get_by_id(parent_id)
        if parent is None:
            return [parent_id]
        return self.materializer.parse_path(parent.path) + [parent.id]

    def _move_lock_keys(self, node_id: int, new_parent_id: Optional[int]) -> List[Optional[int]]:
        """移动需要锁定的键：原父节点、新父节点、被移动节点自身、新父节点的全部祖先

        两个可能互相成环的移动（A 移到 B 之下，B 移到 A 之下）一定在某个键上冲突。
        """
        old_parent_id = self._require_node(node_id).parent_id
        return [old_parent_id, new_parent_id, node_id] + self._lineage(new_parent_id)

    def move(
        self,
        node_id: int,
        new_parent_id: Optional[int] = None,
        new_order_index: Optional[int] = None,
        expected_version: Optional[int] = None,
        actor: Optional[str] = None,
    ):
        """移动节点到新的父节点下（new_parent_id 为空表示移动为根节点）

        执行顺序：
            1. 节点或新父节点不存在 → NotFound
            2. 新父节点是自身或其后代 → CycleDetected
            3. 类型校验 → TypeNotAllowed
            4. 新的兄弟集合中名称/编码重复 → DuplicateSibling
            5. 版本校验 → ConcurrencyConflict
            6. 分配 order_index
            7. 重写自身及全部后代的 path / depth
            8. 整体提交

        持锁后重新读取节点和新父节点；等待锁期间二者的位置被其他操作改变时抛出
        ConcurrencyConflict，调用方可以重试。

        Returns:
            移动后的节点
        """
        self._check_order_index(new_order_index)
        lock_keys = self._move_lock_keys(node_id, new_parent_id)
        old_parent_id = lock_keys[0]

        with self.locks.hold(*lock_keys):
            with self.atomic("移动节点"):
                node = self._require_node(node_id)
                self.session.refresh(node)
                if node.deleted_at is not None:
                    raise Err.node_not_found(node_id)
                if node.parent_id != old_parent_id:
                    raise Err.version_conflict(
                        f"节点 {node_id} 在等待锁期间已被移动，请重试", node_id=node_id
                    )

                new_parent = self.require_parent(new_parent_id)
                ancestor_ids = []
                if new_parent is not None:
                    self.session.refresh(new_parent)
                    ancestor_ids = self.materializer.parse_path(new_parent.path)

                if new_parent_id == node.id:
                    raise Err.cycle(f"不能将节点 {node_id} 移动到自身之下", node_id=node_id)
                descendants = self.store.get_descendants(node.id)
                if node.id in ancestor_ids or (
                    new_parent_id is not None and new_parent_id in {d.id for d in descendants}
                ):
                    raise Err.cycle(
                        f"不能将节点 {node_id} 移动到其后代 {new_parent_id} 之下",
                        node_id=node_id,
                        new_parent_id=new_parent_id,
                    )
                if not set(ancestor_ids) <= set(lock_keys):
                    raise Err.version_conflict(
                        f"新父节点 {new_parent_id} 在等待锁期间已被移动，请重试",
                        node_id=node_id,
                        new_parent_id=new_parent_id,
                    )

                same_parent = node.parent_id == new_parent_id
                if not same_parent:
                    self._require_active_type(node.node_type_id)
                    self._check_parent_allows_children(new_parent)
                    subtree_height = max((d.depth for d in descendants), default=node.depth) - node.depth
                    self._check_depth(self.materializer.child_depth(new_parent) + subtree_height)
                    self._check_sibling_unique(new_parent_id, node.name, node.code, exclude_id=node.id)

                self._check_version(node, expected_version)

                if same_parent and new_order_index is None:
                    order_index = node.order_index
                else:
                    order_index = self._claim_order_index(new_parent_id, new_order_index, exclude_id=node.id)

                node.order_index = order_index
                node.touch(actor)

                rewritten = 0
                if not same_parent:
                    deadline = self.materializer.start_deadline()
                    node.parent_id = new_parent_id
                    rewritten = self.materializer.apply_move(node, new_parent, descendants, deadline)

                self.store.update(node)

        logger.info(
            f"移动节点: id={node_id}, {old_parent_id} -> {new_parent_id}, "
            f"order_index={order_index}, 重写 {rewritten} 行, actor={actor}"
        )
        return node

    # ==================== 排序 ====================

    def reorder(self, parent_id: Optional[int], ordered_child_ids: List[int], actor: Optional[str] = None) -> List:
        """按给定顺序为子节点重新分配 1..n 的 order_index

        未列出的子节点按原顺序排在后面。

        Raises:
            ResourceNotFoundException: 父节点不存在
            ValidationException: id 重复，或某个 id 不是该父节点的子节点
        """
        ordered_child_ids = list(ordered_child_ids)
        if len(set(ordered_child_ids)) != len(ordered_child_ids):
            raise Err.invalid("排序列表中存在重复的节点ID")

        with self.locks.hold(parent_id):
            with self.atomic("排序子节点"):
                self.require_parent(parent_id)
                children = self.store.get_children(parent_id)
                by_id = {child.id: child for child in children}
                foreign = [i for i in ordered_child_ids if i not in by_id]
                if foreign:
                    raise Err.invalid(
                        f"以下节点不是 {parent_id} 的子节点: {foreign}",
                        parent_id=parent_id,
                        node_ids=foreign,
                    )

                listed = set(ordered_child_ids)
                final = [by_id[i] for i in ordered_child_ids]
                final.extend(child for child in children if child.id not in listed)
                for index, child in enumerate(final, start=1):
                    if child.order_index != index:
                        child.order_index = index
                        child.touch(actor)

        logger.info(f"排序子节点: parent_id={parent_id}, 共 {len(final)} 个, actor={actor}")
        return final

    # ==================== 删除 ====================

    def _delete(self, node_id: int, cascade: bool, expected_version: Optional[int], actor: Optional[str]) -> List:
        node = self._require_node(node_id)
        self._check_version(node, expected_version)

        descendants = []
        if self.store.has_children(node.id):
            if not cascade:
                raise Err.has_children(
                    f"节点 {node_id} 存在 {self.store.count_children(node.id)} 个子节点，无法删除",
                    node_id=node_id,
                )
            descendants = self.store.get_descendants(node.id)

        nodes = [node] + descendants
        self.store.soft_delete(nodes, actor)
        return nodes

    def delete(
        self,
        node_id: int,
        cascade: bool = False,
        expected_version: Optional[int] = None,
        actor: Optional[str] = None
    ) -> int:
        """软删除节点

        Args:
            cascade: 是否同时删除全部后代；为 False 且存在子节点时抛出 HasChildren

        Returns:
            删除的节点数（含后代）
        """
        with self.atomic("删除节点"):
            nodes = self._delete(node_id, cascade, expected_version, actor)
        logger.info(f"删除节点: id={node_id}, 共 {len(nodes)} 个, cascade={cascade}, actor={actor}")
        return len(nodes)

    # ==================== 题目关联 ====================

    def link_content(self, node_id: int, content_id: int, is_primary: bool = False, actor: Optional[str] = None):
        """将题目关联到节点（重复关联不会重复计数）"""
        with self.atomic("关联题目"):
            node = self._require_node(node_id)
            link = self.store.link_content(node, content_id, is_primary)
            node.touch(actor)
        return link

    def unlink_content(self, node_id: int, content_id: int, actor: Optional[str] = None) -> bool:
        with self.atomic("取消关联题目"):
            node = self._require_node(node_id)
            removed = self.store.unlink_content(node, content_id)
            if removed:
                node.touch(actor)
        return removed

    # ==================== 批量操作 ====================

    def bulk_create(self, items: Iterable, actor: Optional[str] = None) -> List:
        """批量创建节点（同一事务，任一失败全部回滚）

        Args:
            items: NodeCreate 或等价字典的列表
        """
        requests = _validate_items(items, NodeCreate)
        with self.locks.hold(*{r.parent_id for r in requests}):
            with self.atomic("批量创建节点"):
                nodes = [self.create(actor=actor, **r.model_dump()) for r in requests]
        logger.info(f"批量创建节点 {len(nodes)} 个, actor={actor}")
        return nodes

    def bulk_move(self, items: Iterable, actor: Optional[str] = None) -> List:
        """批量移动节点（同一事务，按顺序执行）

        Args:
            items: NodeMove 或等价字典的列表
        """
        requests = _validate_items(items, NodeMove)
        lock_keys = set()
        for r in requests:
            lock_keys.update(self._move_lock_keys(r.node_id, r.new_parent_id))

        with self.locks.hold(*lock_keys):
            with self.atomic("批量移动节点"):
                nodes = [
                    self.move(
                        r.node_id,
                        new_parent_id=r.new_parent_id,
                        new_order_index=r.new_order_index,
                        expected_version=r.expected_version,
                        actor=actor,
                    )
                    for r in requests
                ]
        logger.info(f"批量移动节点 {len(nodes)} 个, actor={actor}")
        return nodes

    def bulk_delete(self, node_ids: Iterable[int], cascade: bool = False, actor: Optional[str] = None) -> int:
        """批量删除节点，已被前面的级联删除覆盖的ID直接跳过

        Returns:
            删除的节点总数
        """
        deleted = set()
        with self.atomic("批量删除节点"):
            for node_id in node_ids:
                if node_id in deleted:
                    continue
                nodes = self._delete(node_id, cascade, None, actor)
                deleted.update(n.id for n in nodes)
        logger.info(f"批量删除节点 {len(deleted)} 个, cascade={cascade}, actor={actor}")
        return len(deleted)


__all__ = ["TreeMutationService", "UPDATABLE_NODE_FIELDS", "STRUCTURAL_FIELDS"]
