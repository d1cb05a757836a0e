"""物化路径计算测试"""

import time
from types import SimpleNamespace

import pytest

from qbtree.category import PathMaterializer
from qbtree.config import TreeSettings
from qbtree.exceptions import CascadeTimeoutException


class FakeStore:
    """只记录 update_many_paths 调用的存储"""

    def __init__(self):
        self.settings = TreeSettings()
        self.batches = []

    def update_many_paths(self, batch, nodes=None):
        self.batches.append(dict(batch))
        changed = 0
        for node in nodes or []:
            if node.id in batch and (node.path, node.depth) != batch[node.id]:
                node.path, node.depth = batch[node.id]
                changed += 1
        return changed


def _node(id, path="", depth=0):
    return SimpleNamespace(id=id, path=path, depth=depth)


class TestPathCalculation:
    """路径计算测试"""

    @pytest.fixture(autouse=True)
    def setup_materializer(self):
        self.store = FakeStore()
        self.materializer = PathMaterializer(self.store)

    def test_root_child_path(self):
        """测试根节点的路径"""
        assert self.materializer.child_path(None) == ""
        assert self.materializer.child_depth(None) == 0

    def test_nested_child_path(self):
        """测试子节点路径只包含祖先"""
        math = _node(1)
        algebra = _node(2, "-1-", 1)
        assert self.materializer.child_path(math) == "-1-"
        assert self.materializer.child_path(algebra) == "-1-2-"
        assert self.materializer.child_depth(algebra) == 2
        assert self.materializer.subtree_prefix(algebra) == "-1-2-"

    def test_parse_path(self):
        """测试解析路径"""
        assert self.materializer.parse_path("-1-12-") == [1, 12]
        assert self.materializer.parse_path("") == []
        assert self.materializer.parse_path(None) == []

    def test_assign(self):
        """测试为新节点设置路径"""
        node = _node(3)
        self.materializer.assign(node, _node(2, "-1-", 1))
        assert (node.path, node.depth) == ("-1-2-", 2)


class TestApplyMove:
    """移动重写测试"""

    @pytest.fixture(autouse=True)
    def setup_materializer(self):
        self.store = FakeStore()
        self.materializer = PathMaterializer(self.store)

    def test_move_to_root(self):
        """测试移动为根节点时后代前缀与深度同步调整"""
        algebra = _node(2, "-1-", 1)
        linear = _node(3, "-1-2-", 2)
        deep = _node(4, "-1-2-3-", 3)

        written = self.materializer.apply_move(algebra, None, [linear, deep])

        assert written == 3
        assert (algebra.path, algebra.depth) == ("", 0)
        assert (linear.path, linear.depth) == ("-2-", 1)
        assert (deep.path, deep.depth) == ("-2-3-", 2)
        assert self.store.batches == [{3: ("-2-", 1), 4: ("-2-3-", 2)}]

    def test_move_deeper(self):
        """测试移动到更深的位置"""
        algebra = _node(2, "-1-", 1)
        linear = _node(3, "-1-2-", 2)
        target = _node(7, "-5-6-", 2)

        self.materializer.apply_move(algebra, target, [linear])

        assert (algebra.path, algebra.depth) == ("-5-6-7-", 3)
        assert (linear.path, linear.depth) == ("-5-6-7-2-", 4)

    def test_rows_outside_subtree_skipped(self):
        """测试不在旧子树下的行不改写"""
        algebra = _node(2, "-1-", 1)
        stray = _node(9, "-8-", 1)

        written = self.materializer.apply_move(algebra, None, [stray])

        assert written == 1
        assert (stray.path, stray.depth) == ("-8-", 1)


class TestDeadline:
    """级联截止时间测试"""

    def test_zero_timeout_expires(self):
        """测试超时为 0 时立即过期"""
        materializer = PathMaterializer(FakeStore())
        deadline = materializer.start_deadline(0)
        with pytest.raises(CascadeTimeoutException) as exc_info:
            materializer.check_deadline(deadline, node_id=2)
        assert exc_info.value.extra["node_id"] == 2

    def test_no_deadline(self):
        """测试未设置截止时间时不检查"""
        PathMaterializer(FakeStore()).check_deadline(None)

    def test_future_deadline(self):
        """测试未到截止时间"""
        materializer = PathMaterializer(FakeStore())
        materializer.check_deadline(time.monotonic() + 60)

    def test_expired_during_move(self):
        """测试重写过程中超时"""
        materializer = PathMaterializer(FakeStore())
        algebra = _node(2, "-1-", 1)
        with pytest.raises(CascadeTimeoutException):
            materializer.apply_move(
                algebra, None, [_node(3, "-1-2-", 2)], deadline=time.monotonic() - 1
            )
