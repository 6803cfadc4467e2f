"""
配置数据模型和验证

基于 Pydantic 的配置模型，提供数据验证和类型检查功能。
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Dict, Any, List


DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiConfig(BaseModel):
    """Gemini 生成接口配置"""
    api_key: str = Field("", description="Gemini API 密钥")
    model: str = Field(DEFAULT_GEMINI_MODEL, description="图像生成模型名称")
    base_url: str = Field(DEFAULT_GEMINI_BASE_URL, description="Gemini API 基础地址")
    timeout: Optional[float] = Field(None, gt=0, description="上游请求超时时间 (秒)，为空表示不限制")
    propagate_mime_type: bool = Field(False, description="使用上游返回的图像类型构造 data URI")

    @validator('model')
    def validate_model(cls, v):
        if not v:
            raise ValueError("模型名称不能为空")
        return v

    @validator('base_url')
    def validate_base_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url 必须以 http:// 或 https:// 开头")
        return v.rstrip("/")


class ServerConfig(BaseModel):
    """服务器配置"""
    host: str = Field("0.0.0.0", description="服务器主机地址")
    port: int = Field(3001, ge=1, le=65535, description="服务器端口")
    cors_origins: List[str] = Field(default=["*"], description="允许的跨域来源")

    @validator('host')
    def validate_host(cls, v):
        if not v:
            raise ValueError("主机地址不能为空")
        return v


class LogConfig(BaseModel):
    """日志配置"""
    level: str = Field("INFO", description="日志级别")
    file_path: Optional[str] = Field(None, description="日志文件路径")
    json_format: bool = Field(False, description="以 JSON 格式输出日志")

    @validator('level')
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"日志级别必须是 {valid_levels} 中的一个")
        return v.upper()


class AppConfig(BaseModel):
    """应用程序完整配置"""
    gemini: GeminiConfig = GeminiConfig()
    server: ServerConfig = ServerConfig()
    log: LogConfig = LogConfig()

    class Config:
        extra = "forbid"  # 禁止额外字段


def validate_config_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """
    验证配置字典并返回 AppConfig 实例

    Args:
        config_dict: 配置字典

    Returns:
        AppConfig: 验证后的配置对象

    Raises:
        ValueError: 配置验证失败
    """
    try:
        return AppConfig(**config_dict)
    except Exception as e:
        raise ValueError(f"配置验证失败: {str(e)}")


def get_default_config() -> Dict[str, Any]:
    """
    获取默认配置

    Returns:
        Dict[str, Any]: 默认配置字典
    """
    return {
        "gemini": {
            "api_key": "",
            "model": DEFAULT_GEMINI_MODEL,
            "base_url": DEFAULT_GEMINI_BASE_URL,
            "timeout": None,
            "propagate_mime_type": False
        },
        "server": {
            "host": "0.0.0.0",
            "port": 3001,
            "cors_origins": ["*"]
        },
        "log": {
            "level": "INFO",
            "file_path": None,
            "json_format": False
        }
    }
