"""
分类树模块 - 节点类型注册表

节点类型是扁平的字典表，不涉及任何路径计算。
唯一约束规则：被未删除节点引用的类型不能删除；系统内置类型不能修改。
"""

from typing import List, Optional, Tuple

from sqlalchemy import func, or_

from qbtree.exceptions import Err, ErrorCode, DuplicateTypeException, store_guard
from qbtree.log import get_logger

from ..results import TypeUsage
from .base import TreeServiceBase

logger = get_logger()

# update_type 允许修改的字段
UPDATABLE_TYPE_FIELDS = {"code", "name", "note", "caption", "allows_children", "is_active", "is_visible"}


class TypeRegistry(TreeServiceBase):
    """节点类型注册表

    使用示例:
        registry = TypeRegistry()

        chapter = registry.create_type("chapter", "章节")
        point = registry.create_type("point", "知识点", allows_children=False)

        registry.deactivate(point.id)
        ok, reason = registry.validate_deletion(chapter.id)
    """

    # ==================== 查询 ====================

    @store_guard
    def get_type(self, type_id: int):
        """根据ID获取类型，不存在返回 None"""
        if type_id is None:
            return None
        return self.type_model.query.filter(self.type_model.id == type_id).first()

    @store_guard
    def get_type_by_code(self, code: str):
        if not code:
            return None
        return self.type_model.query.filter(self.type_model.code == code).first()

    def require_type(self, type_id: int):
        """获取类型，不存在时抛出 NotFound"""
        node_type = self.get_type(type_id)
        if node_type is None:
            raise Err.type_not_found(type_id)
        return node_type

    @store_guard
    def list_types(
        self,
        active_only: bool = False,
        visible_only: bool = False,
        allows_children_only: bool = False
    ) -> List:
        """获取类型列表（按ID排序）"""
        query = self.type_model.query
        if active_only:
            query = query.filter(self.type_model.is_active.is_(True))
        if visible_only:
            query = query.filter(self.type_model.is_visible.is_(True))
        if allows_children_only:
            query = query.filter(self.type_model.allows_children.is_(True))
        return query.order_by(self.type_model.id).all()

    @store_guard
    def list_system_types(self) -> List:
        return self.type_model.query.filter(
            self.type_model.is_system.is_(True)
        ).order_by(self.type_model.id).all()

    @store_guard
    def list_user_types(self) -> List:
        return self.type_model.query.filter(
            self.type_model.is_system.is_(False)
        ).order_by(self.type_model.id).all()

    @store_guard
    def search(self, term: str) -> List:
        """按编码、名称模糊搜索（忽略大小写）"""
        term = (term or "").strip().lower()
        if not term:
            return []
        return self.type_model.query.filter(or_(
            func.lower(self.type_model.code).contains(term, autoescape=True),
            func.lower(self.type_model.name).contains(term, autoescape=True),
        )).order_by(self.type_model.id).all()

    # ==================== 唯一性 ====================

    @store_guard
    def is_code_unique(self, code: str, exclude_id: Optional[int] = None) -> bool:
        query = self.type_model.query.filter(self.type_model.code == code)
        if exclude_id is not None:
            query = query.filter(self.type_model.id != exclude_id)
        return query.first() is None

    @store_guard
    def is_name_unique(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.type_model.query.filter(
            func.lower(self.type_model.name) == name.strip().lower()
        )
        if exclude_id is not None:
            query = query.filter(self.type_model.id != exclude_id)
        return query.first() is None

    def _check_unique(self, code: str, name: str, exclude_id: Optional[int] = None):
        if code is not None and not self.is_code_unique(code, exclude_id):
            raise DuplicateTypeException(f"节点类型编码已存在: {code}", field="code", value=code)
        if name is not None and not self.is_name_unique(name, exclude_id):
            raise DuplicateTypeException(f"节点类型名称已存在: {name}", field="name", value=name)

    # ==================== 使用情况 ====================

    @store_guard
    def get_usage(self, type_id: int) -> TypeUsage:
        """统计引用该类型的未删除节点数"""
        query = self.node_model.query.filter(self.node_model.node_type_id == type_id)
        return TypeUsage(
            type_id=type_id,
            total=query.count(),
            active=query.filter(self.node_model.is_active.is_(True)).count(),
        )

    def is_in_use(self, type_id: int) -> bool:
        return self.get_usage(type_id).in_use

    def validate_deletion(self, type_id: int) -> Tuple[bool, Optional[str]]:
        """检查类型能否删除

        Returns:
            (是否可删除, 不可删除的原因)
        """
        node_type = self.get_type(type_id)
        if node_type is None:
            return False, f"节点类型不存在: {type_id}"
        if node_type.is_system:
            return False, f"系统内置类型不能删除: {node_type.code}"
        usage = self.get_usage(type_id)
        if usage.in_use:
            return False, f"节点类型被 {usage.total} 个节点使用"
        return True, None

    # ==================== 写入 ====================

    def _check_mutable(self, node_type, action: str):
        if node_type.is_system:
            raise Err.conflict(
                f"系统内置类型不能{action}: {node_type.code}",
                code=ErrorCode.SYSTEM_TYPE_PROTECTED,
                type_id=node_type.id,
            )

    def create_type(
        self,
        code: str,
        name: str,
        allows_children: bool = True,
        is_active: bool = True,
        is_visible: bool = True,
        is_system: bool = False,
        note: str = None,
    ):
        """创建节点类型

        Raises:
            ValidationException: 编码或名称为空
            DuplicateTypeException: 编码或名称已存在
        """
        code = (code or "").strip()
        name = (name or "").strip()
        if not code or not name:
            raise Err.invalid("节点类型的编码和名称不能为空")

        with self.atomic("创建节点类型"):
            self._check_unique(code, name)
            node_type = self.type_model(
                code=code,
                name=name,
                note=note,
                allows_children=allows_children,
                is_active=is_active,
                is_visible=is_visible,
                is_system=is_system,
            )
            self.session.add(node_type)
        logger.info(f"创建节点类型: {code} (id={node_type.id})")
        return node_type

    def update_type(self, type_id: int, **fields):
        """更新节点类型

        Raises:
            ResourceNotFoundException: 类型不存在
            ResourceConflictException: 系统内置类型（SYSTEM_TYPE_PROTECTED）
            DuplicateTypeException: 新编码或名称已存在
            ValidationException: 包含不允许修改的字段
        """
        unknown = set(fields) - UPDATABLE_TYPE_FIELDS
        if unknown:
            raise Err.invalid(f"不允许修改的字段: {', '.join(sorted(unknown))}")

        with self.atomic("更新节点类型"):
            node_type = self.require_type(type_id)
            self._check_mutable(node_type, "修改")
            if "code" in fields:
                fields["code"] = (fields["code"] or "").strip()
                if not fields["code"]:
                    raise Err.invalid("节点类型编码不能为空")
            if "name" in fields:
                fields["name"] = (fields["name"] or "").strip()
                if not fields["name"]:
                    raise Err.invalid("节点类型名称不能为空")
            self._check_unique(fields.get("code"), fields.get("name"), exclude_id=type_id)
            for key, value in fields.items():
                setattr(node_type, key, value)
        logger.info(f"更新节点类型: id={type_id}, 字段={sorted(fields)}")
        return node_type

    def delete_type(self, type_id: int):
        """删除（软删除）节点类型

        Raises:
            TypeInUseException: 仍有未删除的节点引用该类型
        """
        with self.atomic("删除节点类型"):
            node_type = self.require_type(type_id)
            self._check_mutable(node_type, "删除")
            usage = self.get_usage(type_id)
            if usage.in_use:
                raise Err.type_in_use(
                    f"节点类型 {node_type.code} 被 {usage.total} 个节点使用，无法删除",
                    type_id=type_id,
                    usage=usage.total,
                )
            node_type.soft_delete()
        logger.info(f"删除节点类型: id={type_id}")

    def _set_flag(self, type_id: int, field: str, value: bool, action: str):
        with self.atomic(f"{action}节点类型"):
            node_type = self.require_type(type_id)
            if not value:
                self._check_mutable(node_type, action)
            setattr(node_type, field, value)
        return node_type

    def activate(self, type_id: int):
        return self._set_flag(type_id, "is_active", True, "启用")

    def deactivate(self, type_id: int):
        return self._set_flag(type_id, "is_active", False, "停用")

    def show(self, type_id: int):
        return self._set_flag(type_id, "is_visible", True, "显示")

    def hide(self, type_id: int):
        return self._set_flag(type_id, "is_visible", False, "隐藏")


__all__ = ["TypeRegistry", "UPDATABLE_TYPE_FIELDS"]
