"""树形结构 TreeMixin 测试

测试 TreeMixin 的核心功能：
1. 路径解析与拼接
2. 祖先 / 子树前缀
3. 节点关系判断
"""

import pytest
from sqlalchemy import Integer, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, sessionmaker, scoped_session

from qbtree.orm import CoreModel, BaseModel, Base
from qbtree.orm.tree import TreeMixin, TreeFieldsMixin, split_path, join_path


# ==================== 测试模型定义 ====================

class TreeChapter(BaseModel, TreeFieldsMixin, TreeMixin):
    """章节模型 - 使用 TreeFieldsMixin"""
    __tablename__ = "test_tree_chapter"
    __table_args__ = {'extend_existing': True}

    parent_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("test_tree_chapter.id"),
        nullable=True
    )
    title: Mapped[str] = mapped_column(String(100), nullable=True)


# ==================== 测试类 ====================

class TestPathHelpers:
    """路径工具测试"""

    def test_split_path(self):
        """测试解析路径"""
        assert split_path("-1-7-") == [1, 7]
        assert split_path("") == []
        assert split_path(None) == []
        assert split_path("/3/4/", separator="/") == [3, 4]

    def test_join_path(self):
        """测试拼接路径"""
        assert join_path([1, 7]) == "-1-7-"
        assert join_path([]) == ""

    def test_round_trip(self):
        """测试拼接后再解析得到原列表"""
        ids = [3, 14, 159]
        assert split_path(join_path(ids)) == ids


class TestTreeMixinProperties:
    """不依赖数据库的属性测试"""

    def test_root_prefix(self):
        """测试根节点的子树前缀"""
        node = TreeChapter(title="Root")
        node.id = 1
        node.path = ""
        assert node.subtree_prefix == "-1-"
        assert node.ancestor_ids == []
        assert node.get_path_ids() == [1]
        assert node.is_root()

    def test_nested_prefix(self):
        """测试子节点的子树前缀"""
        node = TreeChapter(title="Child", parent_id=1)
        node.id = 7
        node.path = "-1-"
        assert node.subtree_prefix == "-1-7-"
        assert node.ancestor_ids == [1]
        assert not node.is_root()

    def test_ancestor_relations(self):
        """测试祖先 / 子孙判断"""
        root = TreeChapter(title="Root")
        root.id, root.path = 1, ""
        child = TreeChapter(title="Child", parent_id=1)
        child.id, child.path = 12, "-1-"
        other = TreeChapter(title="Other")
        other.id, other.path = 11, ""

        assert root.is_ancestor_of(child)
        assert child.is_descendant_of(root)
        assert not other.is_ancestor_of(child)
        assert not root.is_ancestor_of(root)


class TestTreeMixinWithDatabase:
    """数据库相关的方法测试"""

    @pytest.fixture(autouse=True)
    def setup_db(self, memory_engine):
        """初始化数据库"""
        Base.metadata.create_all(bind=memory_engine)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)
        self.session_scope = scoped_session(SessionLocal)
        prev_query = CoreModel.__dict__.get("query")
        CoreModel.query = self.session_scope.query_property()
        yield
        self.session_scope.remove()
        if prev_query is None:
            del CoreModel.query
        else:
            CoreModel.query = prev_query

    def test_field_defaults(self):
        """测试 TreeFieldsMixin 字段默认值"""
        root = TreeChapter(title="Root")
        root.save(commit=True)
        assert root.path == ""
        assert root.depth == 0
        assert root.order_index == 1

    def test_path_has_no_length_limit(self):
        """测试 path 使用 Text，深层节点的长路径可以完整保存"""
        assert isinstance(TreeChapter.__table__.c.path.type, Text)

        long_path = join_path(list(range(1000, 1400)), "-")
        node = TreeChapter(title="Deep", path=long_path, depth=400)
        node.save(commit=True)
        self.session_scope.expire_all()

        assert len(long_path) > 1000
        assert TreeChapter.get(node.id).path == long_path

    def test_is_leaf(self):
        """测试叶子判断排除已删除的子节点"""
        root = TreeChapter(title="Root")
        root.save(commit=True)
        child = TreeChapter(title="Child", parent_id=root.id, path=f"-{root.id}-", depth=1)
        child.save(commit=True)

        assert not root.is_leaf()
        assert child.is_leaf()

        child.soft_delete()
        child.save(commit=True)
        assert root.is_leaf()
