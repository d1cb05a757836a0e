"""ORM 工具函数

提供命名转换工具。
"""
import re


def to_snake_case(name: str, remove_model_suffix: bool = False) -> str:
    """驼峰命名转下划线命名（支持连续大写缩写如 API、URL）

    Args:
        name: 类名或字符串
        remove_model_suffix: 是否移除 Model 后缀

    Returns:
        下划线格式的字符串

    Examples:
        >>> to_snake_case("TreeNode")
        'tree_node'
        >>> to_snake_case("NodeContentLink")
        'node_content_link'
        >>> to_snake_case("APIClient")
        'api_client'
        >>> to_snake_case("TreeNodeModel", remove_model_suffix=True)
        'tree_node'
    """
    if remove_model_suffix and name.endswith('Model'):
        name = name[:-5]
    # 连续大写后跟大写+小写：APIClient → API_Client
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    # 小写后跟大写：nodeType → node_Type
    result = re.sub(r'([a-z])([A-Z])', r'\1_\2', result)
    return result.lower()
