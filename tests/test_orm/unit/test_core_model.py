"""CoreModel / BaseModel 测试

测试模型基类的核心功能：
1. 自动表名与命名转换
2. CRUD 与序列化
3. 乐观锁版本号
4. 操作人字段
"""

import pytest
from datetime import datetime
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from qbtree.orm import AuditFieldsMixin, BaseModel, to_snake_case


# ==================== 测试模型定义 ====================

class CoreSample(BaseModel, AuditFieldsMixin):
    """使用自动表名的测试模型"""


# ==================== 测试类 ====================

class TestNaming:
    """命名测试"""

    def test_auto_tablename(self):
        """测试根据类名生成表名"""
        assert CoreSample.__tablename__ == "core_sample"

    def test_to_snake_case(self):
        """测试驼峰转下划线"""
        assert to_snake_case("TreeNode") == "tree_node"
        assert to_snake_case("NodeContentLink") == "node_content_link"
        assert to_snake_case("APIClient") == "api_client"
        assert to_snake_case("TreeNodeModel", remove_model_suffix=True) == "tree_node"
        assert to_snake_case("Node2Type") == "node2_type"


class TestCrud:
    """CRUD 测试"""

    @pytest.fixture(autouse=True)
    def setup_db(self, session_scope):
        self.session_scope = session_scope

    def test_constructor_ignores_system_fields(self):
        """测试构造时忽略系统字段"""
        sample = CoreSample(id=99, ver=5, deleted_at=datetime.now(), name="Math")
        assert sample.id is None
        assert sample.ver is None
        assert sample.deleted_at is None
        assert sample.name == "Math"

    def test_pending_id_auto_flush(self):
        """测试访问 pending 对象的 id 时自动 flush"""
        sample = CoreSample(name="Math")
        self.session_scope().add(sample)
        assert sample.id is not None

    def test_save_and_get(self):
        """测试保存与查询"""
        sample = CoreSample(name="Math", code="math").save(commit=True)

        loaded = CoreSample.get(sample.id)
        assert loaded.name == "Math"
        assert loaded.ver == 1
        assert loaded.created_at is not None
        assert CoreSample.get(9999) is None
        assert CoreSample.get_by_code("math").id == sample.id
        assert CoreSample.get_by_name("Math").id == sample.id

    def test_update_kwargs(self):
        """测试通过 kwargs 更新"""
        sample = CoreSample(name="Math").save(commit=True)
        sample.update(name="Algebra", unknown_field="ignored", commit=True)

        loaded = CoreSample.get(sample.id)
        assert loaded.name == "Algebra"
        assert loaded.ver == 2
        assert not hasattr(loaded, "unknown_field")

    def test_to_dict(self):
        """测试序列化"""
        sample = CoreSample(name="Math", note="n").save(commit=True)
        data = sample.to_dict(exclude={"note"})
        assert data["name"] == "Math"
        assert data["ver"] == 1
        assert "note" not in data


class TestVersion:
    """乐观锁测试"""

    @pytest.fixture(autouse=True)
    def setup_db(self, session_scope):
        self.session_scope = session_scope

    def test_stale_version_rejected(self):
        """测试数据库中的版本号变化后写入失败"""
        sample = CoreSample(name="Math").save(commit=True)
        assert sample.ver == 1

        session = self.session_scope()
        session.connection().execute(
            text("UPDATE core_sample SET ver = ver + 1 WHERE id = :id"), {"id": sample.id}
        )
        sample.name = "Algebra"

        with pytest.raises(StaleDataError):
            session.commit()
        session.rollback()

    def test_only_updated_at_change_skipped(self):
        """测试只有 updated_at 变化时不执行 UPDATE"""
        sample = CoreSample(name="Math").save(commit=True)
        sample_id = sample.id

        sample.updated_at = datetime(2020, 1, 1)
        self.session_scope().commit()

        assert CoreSample.get(sample_id).ver == 1


class TestAuditFields:
    """操作人字段测试"""

    def test_touch_created(self):
        """测试创建时写入创建人与修改人"""
        sample = CoreSample(name="Math")
        sample.touch("editor-01", created=True)
        assert sample.created_by == "editor-01"
        assert sample.updated_by == "editor-01"

    def test_touch_update_only(self):
        """测试更新时只写修改人"""
        sample = CoreSample(name="Math")
        sample.touch("editor-01", created=True)
        sample.touch("editor-02")
        assert sample.created_by == "editor-01"
        assert sample.updated_by == "editor-02"

    def test_touch_none(self):
        """测试操作人为空时不修改"""
        sample = CoreSample(name="Math")
        sample.touch(None, created=True)
        assert sample.created_by is None
