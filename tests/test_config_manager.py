"""
配置管理器单元测试
"""

import os
import json
import yaml
import tempfile
import pytest
from unittest.mock import patch

import config.manager
from config.manager import ConfigManager, require_api_key, get_config_manager, init_config, get_current_config
from config.models import AppConfig
from services.exceptions import ConfigurationError


def write_temp_config(suffix: str, content: str) -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix=suffix, delete=False, encoding='utf-8') as f:
        f.write(content)
        return f.name


class TestConfigManager:
    """ConfigManager 测试类"""

    def setup_method(self):
        """每个测试方法前的设置"""
        self.manager = ConfigManager(load_env_file=False)

    def test_init_without_config_path(self):
        """测试不指定配置文件路径的初始化"""
        assert self.manager._config_path is None
        assert self.manager._config is None
        assert not self.manager.is_loaded()

    def test_load_config_without_file(self):
        """测试不指定文件时加载默认配置"""
        config = self.manager.load_config(environ={})
        assert isinstance(config, AppConfig)
        assert config.server.port == 3001
        assert config.gemini.api_key == ""
        assert self.manager.is_loaded()

    def test_load_config_file_not_found(self):
        """测试配置文件不存在"""
        with pytest.raises(FileNotFoundError) as exc_info:
            self.manager.load_config("/nonexistent/config.yaml", environ={})
        assert "配置文件不存在" in str(exc_info.value)

    def test_load_yaml_config_success(self):
        """测试成功加载 YAML 配置文件"""
        config_data = {
            "gemini": {"model": "gemini-custom", "timeout": 120},
            "server": {"port": 9000}
        }
        temp_path = write_temp_config('.yaml', yaml.dump(config_data))

        try:
            config = self.manager.load_config(temp_path, environ={})
            assert config.gemini.model == "gemini-custom"
            assert config.gemini.timeout == 120
            assert config.server.port == 9000
            # 验证默认值仍然存在
            assert config.server.host == "0.0.0.0"
            assert config.gemini.api_key == ""
        finally:
            os.unlink(temp_path)

    def test_load_json_config_success(self):
        """测试成功加载 JSON 配置文件"""
        config_data = {"log": {"level": "debug", "json_format": True}}
        temp_path = write_temp_config('.json', json.dumps(config_data))

        try:
            config = self.manager.load_config(temp_path, environ={})
            assert config.log.level == "DEBUG"
            assert config.log.json_format is True
        finally:
            os.unlink(temp_path)

    def test_load_empty_yaml(self):
        temp_path = write_temp_config('.yml', "")

        try:
            config = self.manager.load_config(temp_path, environ={})
            assert config.server.port == 3001
        finally:
            os.unlink(temp_path)

    def test_invalid_yaml(self):
        """测试 YAML 格式错误"""
        temp_path = write_temp_config('.yaml', "gemini: [unclosed")

        try:
            with pytest.raises(ValueError) as exc_info:
                self.manager.load_config(temp_path, environ={})
            assert "YAML 格式错误" in str(exc_info.value)
        finally:
            os.unlink(temp_path)

    def test_invalid_json(self):
        temp_path = write_temp_config('.json', "{not json")

        try:
            with pytest.raises(ValueError) as exc_info:
                self.manager.load_config(temp_path, environ={})
            assert "JSON 格式错误" in str(exc_info.value)
        finally:
            os.unlink(temp_path)

    def test_unsupported_format(self):
        """测试不支持的配置文件格式"""
        temp_path = write_temp_config('.ini', "[server]")

        try:
            with pytest.raises(ValueError) as exc_info:
                self.manager.load_config(temp_path, environ={})
            assert "不支持的配置文件格式" in str(exc_info.value)
        finally:
            os.unlink(temp_path)

    def test_unknown_section_rejected(self):
        temp_path = write_temp_config('.yaml', yaml.dump({"model": {"model_path": "/x"}}))

        try:
            with pytest.raises(ValueError):
                self.manager.load_config(temp_path, environ={})
        finally:
            os.unlink(temp_path)

    def test_env_overrides(self):
        """测试环境变量覆盖配置"""
        environ = {
            "GEMINI_API_KEY": "env-key",
            "GEMINI_MODEL": "gemini-env",
            "PORT": "4000",
            "HOST": "127.0.0.1",
            "LOG_LEVEL": "warning",
        }
        config = self.manager.load_config(environ=environ)

        assert config.gemini.api_key == "env-key"
        assert config.gemini.model == "gemini-env"
        assert config.server.port == 4000
        assert config.server.host == "127.0.0.1"
        assert config.log.level == "WARNING"

    def test_env_overrides_file(self):
        """测试环境变量优先于配置文件"""
        temp_path = write_temp_config('.yaml', yaml.dump({"server": {"port": 9000}}))

        try:
            config = self.manager.load_config(temp_path, environ={"PORT": "5000"})
            assert config.server.port == 5000
        finally:
            os.unlink(temp_path)

    def test_empty_env_value_ignored(self):
        config = self.manager.load_config(environ={"PORT": "", "GEMINI_API_KEY": ""})
        assert config.server.port == 3001
        assert config.gemini.api_key == ""

    def test_invalid_env_port(self):
        with pytest.raises(ValueError):
            self.manager.load_config(environ={"PORT": "abc"})

    def test_defaults_not_mutated(self):
        """测试多次加载之间默认配置不被修改"""
        self.manager.load_config(environ={"GEMINI_API_KEY": "first"})
        config = self.manager.load_config(environ={})
        assert config.gemini.api_key == ""

    def test_load_from_os_environ(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-os")
        config = self.manager.load_config()
        assert config.gemini.api_key == "from-os"

    def test_get_config_not_loaded(self):
        """测试配置未加载时获取配置"""
        with pytest.raises(RuntimeError):
            self.manager.get_config()


class TestStartupGate:
    """启动检查测试"""

    def test_ensure_api_key_missing(self):
        manager = ConfigManager(load_env_file=False)
        manager.load_config(environ={})

        with pytest.raises(ConfigurationError) as exc_info:
            manager.ensure_api_key()
        assert "GEMINI_API_KEY" in str(exc_info.value)

    def test_ensure_api_key_present(self):
        manager = ConfigManager(load_env_file=False)
        manager.load_config(environ={"GEMINI_API_KEY": "key"})
        manager.ensure_api_key()

    def test_require_api_key(self):
        with pytest.raises(ConfigurationError):
            require_api_key(AppConfig())
        require_api_key(AppConfig(gemini={"api_key": "key"}))


class TestGlobalConfig:
    """全局配置函数测试"""

    def setup_method(self):
        self.manager = ConfigManager(load_env_file=False)
        self.patcher = patch.object(config.manager, '_global_config_manager', self.manager)
        self.patcher.start()

    def teardown_method(self):
        self.patcher.stop()

    def test_get_config_manager_returns_global(self):
        assert get_config_manager() is self.manager

    def test_init_config_from_file(self, monkeypatch):
        """测试通过配置文件初始化全局配置"""
        monkeypatch.delenv("PORT", raising=False)
        path = write_temp_config(".yaml", yaml.dump({"server": {"port": 5000}}))
        try:
            config = init_config(path)
        finally:
            os.unlink(path)

        assert config.server.port == 5000
        assert self.manager.is_loaded()
        assert get_current_config() is config

    def test_get_current_config_loads_defaults(self, monkeypatch):
        """测试未初始化时按默认方式加载"""
        monkeypatch.setenv("GEMINI_MODEL", "gemini-env")

        config = get_current_config()

        assert self.manager.is_loaded()
        assert config.gemini.model == "gemini-env"
        assert get_current_config() is config
