"""版本信息"""

__version__ = "0.1.0"
__author__ = "qbtree"
__description__ = "题库分类树引擎：物化路径存储的可变森林"
