"""
配置管理器

负责从文件加载配置、处理默认值、环境变量覆盖和配置合并逻辑。
"""

import copy
import os
import yaml
import json
from pathlib import Path
from typing import Dict, Any, Optional, Mapping
import logging

from dotenv import load_dotenv

from services.exceptions import ConfigurationError
from .models import AppConfig, validate_config_dict, get_default_config

logger = logging.getLogger(__name__)


# 环境变量 -> (配置节, 配置项)
ENV_OVERRIDES = {
    "GEMINI_API_KEY": ("gemini", "api_key"),
    "GEMINI_MODEL": ("gemini", "model"),
    "GEMINI_TIMEOUT": ("gemini", "timeout"),
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
    "LOG_LEVEL": ("log", "level"),
}


class ConfigManager:
    """配置管理器类"""

    def __init__(self, config_path: Optional[str] = None, load_env_file: bool = True):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径，如果为 None 则使用默认配置
            load_env_file: 是否从 .env 文件加载环境变量
        """
        self._config: Optional[AppConfig] = None
        self._config_path = config_path
        self._load_env_file = load_env_file
        self._default_config = get_default_config()

    def load_config(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> AppConfig:
        """
        加载配置：默认值 -> 配置文件 -> 环境变量

        Args:
            config_path: 配置文件路径，如果为 None 则使用初始化时的路径
            environ: 环境变量映射，默认使用 os.environ

        Returns:
            AppConfig: 加载并验证后的配置对象

        Raises:
            FileNotFoundError: 配置文件不存在
            ValueError: 配置文件格式错误或验证失败
        """
        if config_path:
            self._config_path = config_path

        merged_config = copy.deepcopy(self._default_config)

        if not self._config_path:
            logger.info("No config file specified, using defaults")
        else:
            config_file = Path(self._config_path)
            if not config_file.exists():
                raise FileNotFoundError(f"配置文件不存在: {self._config_path}")

            try:
                # 根据文件扩展名选择解析方法
                if config_file.suffix.lower() in ['.yaml', '.yml']:
                    file_config = self._load_yaml_config(config_file)
                elif config_file.suffix.lower() == '.json':
                    file_config = self._load_json_config(config_file)
                else:
                    raise ValueError(f"不支持的配置文件格式: {config_file.suffix}")
            except ValueError as e:
                raise ValueError(f"加载配置文件失败 {self._config_path}: {str(e)}")

            merged_config = self._merge_configs(merged_config, file_config)
            logger.info(f"Loaded config file: {self._config_path}")

        if environ is None:
            if self._load_env_file:
                load_dotenv()
            environ = os.environ

        merged_config = self._apply_env_overrides(merged_config, environ)

        self._config = validate_config_dict(merged_config)
        return self._config

    def _load_yaml_config(self, config_file: Path) -> Dict[str, Any]:
        """加载 YAML 配置文件"""
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"YAML 格式错误: {str(e)}")

    def _load_json_config(self, config_file: Path) -> Dict[str, Any]:
        """加载 JSON 配置文件"""
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON 格式错误: {str(e)}")

    def _merge_configs(self, default: Dict[str, Any], file_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        合并默认配置和文件配置

        Args:
            default: 默认配置字典
            file_config: 文件配置字典

        Returns:
            Dict[str, Any]: 合并后的配置字典
        """
        merged = default.copy()

        for key, value in file_config.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                # 递归合并嵌套字典
                merged[key] = self._merge_configs(merged[key], value)
            else:
                # 直接覆盖或添加新键
                merged[key] = value

        return merged

    def _apply_env_overrides(self, config: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
        """
        使用环境变量覆盖配置

        空字符串视为未设置。
        """
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value:
                config.setdefault(section, {})[key] = value
                if env_name != "GEMINI_API_KEY":
                    logger.debug(f"Config override from environment: {env_name}")
        return config

    def get_config(self) -> AppConfig:
        """
        获取当前配置

        Returns:
            AppConfig: 当前配置对象

        Raises:
            RuntimeError: 配置未加载
        """
        if self._config is None:
            raise RuntimeError("配置未加载，请先调用 load_config()")
        return self._config

    def is_loaded(self) -> bool:
        """配置是否已加载"""
        return self._config is not None

    def ensure_api_key(self) -> None:
        """
        启动检查：缺少 Gemini API 密钥时拒绝启动

        Raises:
            ConfigurationError: 未配置 GEMINI_API_KEY
        """
        require_api_key(self.get_config())


def require_api_key(config: AppConfig) -> None:
    """缺少 Gemini API 密钥时抛出 ConfigurationError"""
    if not config.gemini.api_key:
        raise ConfigurationError("GEMINI_API_KEY is not set in the environment or .env file.")


# 全局配置管理器实例
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """
    获取全局配置管理器实例

    Returns:
        ConfigManager: 配置管理器实例
    """
    global _global_config_manager
    if _global_config_manager is None:
        _global_config_manager = ConfigManager()
    return _global_config_manager


def init_config(config_path: Optional[str] = None) -> AppConfig:
    """
    初始化全局配置

    Args:
        config_path: 配置文件路径

    Returns:
        AppConfig: 加载的配置对象
    """
    manager = get_config_manager()
    return manager.load_config(config_path)


def get_current_config() -> AppConfig:
    """
    获取当前全局配置，未加载时按默认方式加载

    Returns:
        AppConfig: 当前配置对象
    """
    manager = get_config_manager()
    if not manager.is_loaded():
        return manager.load_config()
    return manager.get_config()
