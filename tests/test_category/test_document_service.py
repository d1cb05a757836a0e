"""树文档导入导出测试"""

import json

import pytest

from qbtree.category import TreeDocument
from qbtree.exceptions import ResourceNotFoundException, ValidationException


@pytest.fixture
def sample_document():
    """两层章节文档"""
    return {
        "version": 1,
        "roots": [
            {
                "name": "Math",
                "code": "math",
                "type_code": "chapter",
                "children": [
                    {"name": "Algebra", "type_code": "chapter", "children": [
                        {"name": "Linear Equations", "type_code": "point"},
                    ]},
                    {"name": "Geometry", "type_code": "chapter"},
                ],
            }
        ],
    }


class TestExport:
    """导出测试"""

    def test_export_subtree(self, tree_engine, math_tree):
        """测试导出子树"""
        document = tree_engine.documents.export_tree(root_id=2)
        assert isinstance(document, TreeDocument)
        assert [n.name for n in document.roots] == ["Algebra"]
        assert document.roots[0].type_code == "chapter"
        assert [n.name for n in document.roots[0].children] == ["Linear Equations"]

    def test_export_forest_json(self, tree_engine, math_tree, chapter_type):
        """测试导出整个森林为 JSON"""
        tree_engine.mutations.create("Physics", node_type_id=chapter_type.id)
        data = json.loads(tree_engine.documents.export_json())
        assert data["version"] == 1
        assert [n["name"] for n in data["roots"]] == ["Math", "Physics"]
        assert "id" not in data["roots"][0]

    def test_export_unknown_root(self, tree_engine):
        """测试导出不存在的子树"""
        with pytest.raises(ResourceNotFoundException):
            tree_engine.documents.export_tree(root_id=99)


class TestImport:
    """导入测试"""

    def test_import_creates_nodes(self, tree_engine, chapter_type, point_type, sample_document):
        """测试导入新建节点"""
        result = tree_engine.documents.import_tree(sample_document, actor="importer")

        assert result.created == 4
        assert result.reused == 0
        assert result.total == 4
        linear = tree_engine.queries.find_by_name_path(["Math", "Algebra", "Linear Equations"])
        assert linear.depth == 2
        assert linear.node_type_id == point_type.id
        assert linear.created_by == "importer"
        # node_ids 按先序排列
        names = [tree_engine.queries.get_node(i).name for i in result.node_ids]
        assert names == ["Math", "Algebra", "Linear Equations", "Geometry"]

    def test_import_is_idempotent(self, tree_engine, chapter_type, point_type, sample_document):
        """测试重复导入不产生重复节点"""
        first = tree_engine.documents.import_tree(sample_document)
        second = tree_engine.documents.import_tree(sample_document)

        assert second.created == 0
        assert second.reused == 4
        assert second.node_ids == first.node_ids
        assert tree_engine.store.count_all() == 4

    def test_import_matches_existing_by_name(self, tree_engine, math_tree, point_type, sample_document):
        """测试按名称（忽略大小写）匹配已有节点"""
        tree_engine.mutations.update(1, code="math")
        tree_engine.mutations.update(2, name="ALGEBRA")

        result = tree_engine.documents.import_tree(sample_document)

        # Math 按编码匹配，ALGEBRA 按名称匹配，Linear Equations 同名复用，Geometry 新建
        assert result.reused == 3
        assert result.created == 1

    def test_import_under_parent(self, tree_engine, math_tree, point_type):
        """测试导入到指定挂载点"""
        document = {"roots": [{"name": "Quadratics", "type_code": "chapter"}]}
        result = tree_engine.documents.import_tree(document, parent_id=2)
        node = tree_engine.queries.get_node(result.node_ids[0])
        assert node.parent_id == 2
        assert node.path == "-1-2-"

    def test_import_json_string(self, tree_engine, chapter_type, point_type, sample_document):
        """测试导入 JSON 字符串"""
        result = tree_engine.documents.import_tree(json.dumps(sample_document))
        assert result.created == 4

    def test_round_trip_into_new_parent(self, tree_engine, math_tree, chapter_type):
        """测试导出的子树可以导入到另一个位置"""
        document = tree_engine.documents.export_tree(root_id=2)
        physics = tree_engine.mutations.create("Physics", node_type_id=chapter_type.id)

        result = tree_engine.documents.import_tree(document, parent_id=physics.id)

        assert result.created == 2
        copied = tree_engine.queries.find_by_name_path(["Physics", "Algebra", "Linear Equations"])
        assert copied.path == f"-{physics.id}-{result.node_ids[0]}-"

    def test_invalid_document(self, tree_engine):
        """测试文档格式错误"""
        with pytest.raises(ValidationException) as exc_info:
            tree_engine.documents.import_tree({"roots": [{"name": "", "type_code": "chapter"}]})
        assert exc_info.value.details

    def test_unknown_type_code_rolls_back(self, tree_engine, chapter_type):
        """测试类型编码不存在时整体回滚"""
        document = {"roots": [
            {"name": "Math", "type_code": "chapter", "children": [
                {"name": "Algebra", "type_code": "missing"},
            ]},
        ]}
        with pytest.raises(ResourceNotFoundException):
            tree_engine.documents.import_tree(document)
        assert tree_engine.queries.get_roots() == []

    def test_unknown_mount_point(self, tree_engine, chapter_type):
        """测试挂载点不存在"""
        with pytest.raises(ResourceNotFoundException):
            tree_engine.documents.import_tree({"roots": []}, parent_id=99)
