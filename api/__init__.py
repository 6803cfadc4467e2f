"""
API 模块

FastAPI 应用程序和路由的入口点。
"""

from typing import Optional

from fastapi import FastAPI

from config.models import AppConfig
from .app import HugRelayAPI
from .routes import router


def build_app(config: Optional[AppConfig] = None) -> FastAPI:
    """创建应用实例并注册路由"""
    relay = HugRelayAPI()
    application = relay.create_app(config)
    application.include_router(router)
    return application


# 创建 FastAPI 应用实例
app = build_app()

__all__ = ["app", "build_app", "HugRelayAPI"]
