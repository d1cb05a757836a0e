"""配置加载器模块

提供从 YAML 文件加载配置的功能。

使用示例:
    from qbtree.config import ConfigLoader, load_yaml_config, AppSettings

    # 加载配置
    config = ConfigLoader.load("config/settings.yaml")

    # 重新加载
    config = ConfigLoader.reload("config/settings.yaml")

    # 使用 Pydantic Settings
    settings = load_yaml_config("config/settings.yaml", AppSettings)
"""

import copy
import os
from typing import Dict, Any, Optional, Type, TypeVar

import yaml


T = TypeVar("T")


def _resolve_path(config_path: str, base_dir: Optional[str] = None) -> str:
    if os.path.isabs(config_path):
        return config_path
    if base_dir:
        return os.path.join(base_dir, config_path)
    return os.path.abspath(config_path)


class ConfigLoader:
    """配置加载器

    从 YAML 文件加载配置，支持配置缓存。

    使用示例:
        config = ConfigLoader.load("config/settings.yaml")
        db_url = config.get("database", {}).get("url")

        ConfigLoader.clear_cache()
    """

    _cache: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def load(
        cls,
        config_path: str,
        base_dir: Optional[str] = None,
        use_cache: bool = True
    ) -> Dict[str, Any]:
        """加载配置文件

        Args:
            config_path: 配置文件路径（相对或绝对路径）
            base_dir: 基础目录，用于解析相对路径
            use_cache: 是否使用缓存

        Returns:
            配置字典

        Raises:
            FileNotFoundError: 配置文件不存在
            yaml.YAMLError: YAML 解析错误
        """
        abs_path = _resolve_path(config_path, base_dir)

        if use_cache and abs_path in cls._cache:
            return cls._cache[abs_path]

        if not os.path.exists(abs_path):
            raise FileNotFoundError(f"配置文件不存在: {abs_path}")

        with open(abs_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        if use_cache:
            cls._cache[abs_path] = config

        return config

    @classmethod
    def reload(cls, config_path: str, base_dir: Optional[str] = None) -> Dict[str, Any]:
        """重新加载配置文件（忽略缓存）"""
        cls._cache.pop(_resolve_path(config_path, base_dir), None)
        return cls.load(config_path, base_dir, use_cache=True)

    @classmethod
    def clear_cache(cls):
        """清除所有配置缓存"""
        cls._cache.clear()

    @classmethod
    def get_cached_paths(cls) -> list:
        """获取所有已缓存的配置文件路径"""
        return list(cls._cache.keys())


def load_yaml_config(
    config_path: str,
    settings_class: Type[T],
    base_dir: Optional[str] = None,
    **overrides
) -> T:
    """加载 YAML 配置并创建 Pydantic Settings 实例

    Args:
        config_path: 配置文件路径
        settings_class: Pydantic Settings 类
        base_dir: 基础目录
        **overrides: 覆盖配置的参数

    Returns:
        Settings 实例

    使用示例:
        settings = load_yaml_config(
            "config/settings.yaml",
            AppSettings,
            tree={"max_depth": 6},
        )
    """
    # 复制一份，避免覆盖参数污染缓存
    config = copy.deepcopy(ConfigLoader.load(config_path, base_dir))
    config.update(overrides)
    return settings_class(**config)


class ConfigManager:
    """配置管理器

    管理多个配置文件和环境。

    使用示例:
        manager = ConfigManager(base_dir="config")
        manager.load("settings.yaml")
        manager.load("settings.dev.yaml", merge=True)

        timeout = manager.get("tree.cascade_timeout")
    """

    def __init__(self, base_dir: str = None):
        self.base_dir = base_dir or os.getcwd()
        self._config: Dict[str, Any] = {}

    def load(self, config_path: str, merge: bool = False) -> Dict[str, Any]:
        """加载配置文件

        Args:
            config_path: 配置文件路径
            merge: 是否合并到现有配置

        Returns:
            配置字典
        """
        config = copy.deepcopy(ConfigLoader.load(config_path, self.base_dir))

        if merge:
            self._deep_merge(self._config, config)
        else:
            self._config = config

        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置值（支持点号分隔的路径，如 "tree.max_depth"）"""
        value = self._config
        for k in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any):
        """设置配置值（支持点号分隔的路径）"""
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            config = config.setdefault(k, {})
        config[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """返回完整配置字典"""
        return copy.deepcopy(self._config)

    def _deep_merge(self, base: dict, update: dict):
        """深度合并字典"""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value
