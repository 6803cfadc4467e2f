"""
FastAPI 应用程序

主要的 FastAPI 应用实例，包含中间件、异常处理器和生命周期管理。
"""

import time
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.manager import get_current_config, require_api_key
from config.models import AppConfig
from services.gemini_client import GeminiClient
from services.request_processor import RequestProcessor
from services.exceptions import RelayError, ConfigurationError
from services.error_handler import error_handler
from services.logging import configure_logging, get_logger
from .middleware import RequestLoggingMiddleware

logger = get_logger(__name__)


class HugRelayAPI:
    """Hug Relay 应用类"""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.gemini_client: Optional[GeminiClient] = None
        self.request_processor: Optional[RequestProcessor] = None
        self.app_start_time = None

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        """应用生命周期管理"""
        config = self.config

        configure_logging(
            log_level=config.log.level,
            log_file=config.log.file_path,
            json_format=config.log.json_format
        )

        startup_logger = get_logger("startup")

        # 没有 API 密钥时拒绝启动
        try:
            require_api_key(config)
        except ConfigurationError as e:
            startup_logger.error("Refusing to start", error=str(e))
            raise

        self.app_start_time = time.time()
        startup_logger.info(
            "Hug relay service started",
            server_host=config.server.host,
            server_port=config.server.port,
            model=config.gemini.model,
            log_level=config.log.level
        )

        yield

        get_logger("shutdown").info("Hug relay service shut down")

    def create_app(self, config: Optional[AppConfig] = None) -> FastAPI:
        """创建 FastAPI 应用实例"""

        if config is None:
            config = get_current_config()
        self.config = config

        self.request_processor = RequestProcessor(
            propagate_mime_type=config.gemini.propagate_mime_type
        )
        self.gemini_client = GeminiClient.from_config(config.gemini)

        app = FastAPI(
            title="Hug Relay Service",
            description="将两张图像交给 Gemini 合成为拥抱照片的中继服务",
            version="1.0.0",
            lifespan=self.lifespan
        )
        app.state.relay = self

        # 添加请求日志和追踪中间件
        app.add_middleware(RequestLoggingMiddleware)

        # 添加 CORS 中间件（最外层）
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # 全局异常处理器 - 使用统一的错误处理系统
        @app.exception_handler(RelayError)
        async def relay_exception_handler(request: Request, exc: RelayError):
            """中继异常处理器"""
            return error_handler.handle_exception(request, exc)

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """请求验证异常处理器"""
            return error_handler.handle_exception(request, exc)

        @app.exception_handler(StarletteHTTPException)
        async def starlette_exception_handler(request: Request, exc: StarletteHTTPException):
            """HTTP 异常处理器"""
            return error_handler.handle_exception(request, exc)

        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """通用异常处理器"""
            return error_handler.handle_exception(request, exc)

        logger.debug("Application created", model=config.gemini.model,
                     cors_origins=config.server.cors_origins)
        return app

    def get_gemini_client(self) -> GeminiClient:
        """获取 Gemini 客户端实例"""
        if self.gemini_client is None:
            raise RuntimeError("Gemini client not initialized")
        return self.gemini_client

    def get_request_processor(self) -> RequestProcessor:
        """获取请求处理器实例"""
        if self.request_processor is None:
            raise RuntimeError("Request processor not initialized")
        return self.request_processor

    def get_uptime(self) -> float:
        """获取服务运行时间（秒）"""
        if self.app_start_time is None:
            return 0.0
        return time.time() - self.app_start_time
