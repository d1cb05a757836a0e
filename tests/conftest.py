"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 临时文件与目录
- 数据库连接
- 绑定到内存库的分类树引擎
"""

import pytest
import os
import tempfile

# SQLAlchemy
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    # 清理
    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_engine():
    """创建内存数据库引擎

    使用 StaticPool 和 check_same_thread=False 确保：
    1. 所有操作使用同一个连接（StaticPool）
    2. 允许跨线程访问（check_same_thread=False）
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def session_scope(memory_engine):
    """建表并把 CoreModel.query 绑定到内存库的 scoped session"""
    from qbtree.orm import Base, CoreModel, activate_soft_delete_hook
    # 注册分类树模型的表
    import qbtree.category.models  # noqa: F401

    Base.metadata.create_all(bind=memory_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)
    scoped = scoped_session(SessionLocal)
    prev_query = CoreModel.__dict__.get("query")
    CoreModel.query = scoped.query_property()
    activate_soft_delete_hook()
    yield scoped
    scoped.remove()
    if prev_query is None:
        del CoreModel.query
    else:
        CoreModel.query = prev_query


# ==================== 分类树 Fixtures ====================

@pytest.fixture
def tree_settings():
    """默认的分类树配置，测试可以覆盖此 fixture"""
    from qbtree.config import TreeSettings
    return TreeSettings()


@pytest.fixture
def tree_engine(session_scope, tree_settings):
    """绑定到内存库的分类树引擎"""
    from qbtree.category import create_tree_engine
    return create_tree_engine(tree_settings)


@pytest.fixture
def chapter_type(tree_engine):
    """允许子节点的章节类型"""
    return tree_engine.types.create_type("chapter", "Chapter")


@pytest.fixture
def point_type(tree_engine):
    """不允许子节点的知识点类型"""
    return tree_engine.types.create_type("point", "Knowledge Point", allows_children=False)


@pytest.fixture
def math_tree(tree_engine, chapter_type):
    """Math(1) → Algebra(2) → Linear Equations(3)"""
    mutations = tree_engine.mutations
    math = mutations.create("Math", node_type_id=chapter_type.id, actor="admin")
    algebra = mutations.create("Algebra", node_type_id=chapter_type.id, parent_id=math.id, actor="admin")
    linear = mutations.create(
        "Linear Equations", node_type_id=chapter_type.id, parent_id=algebra.id, actor="admin"
    )
    return math, algebra, linear


# ==================== 配置 Fixtures ====================

@pytest.fixture
def sample_yaml_config(temp_file):
    """创建示例 YAML 配置文件"""
    yaml_content = """
database:
  url: "sqlite:///test.db"
  pool_size: 5

logging:
  level: "DEBUG"
  file_path: "logs/test.log"

tree:
  cascade_timeout: 15
  max_depth: 6
  search_max_results: 20
"""
    return temp_file("config/settings.yaml", yaml_content)


# ==================== 日志 Fixtures ====================

@pytest.fixture
def log_dir(temp_dir):
    """创建日志目录"""
    log_path = os.path.join(temp_dir, "logs")
    os.makedirs(log_path, exist_ok=True)
    return log_path
