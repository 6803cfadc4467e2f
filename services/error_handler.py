"""
统一错误处理系统

将请求处理过程中的异常转换为 {"error": "<message>"} 格式的 JSON 响应。
"""

from typing import Dict, Any, Type
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from models.responses import ErrorResponse
from services.logging import get_logger
from services.exceptions import (
    RelayError, UploadValidationError, UpstreamError,
    NoImageReturnedError, SafetyBlockedError, UNKNOWN_ERROR_MESSAGE
)

logger = get_logger(__name__)

IMAGE_FIELDS = {"image1", "image2"}


class ErrorCategory(Enum):
    """错误分类"""
    VALIDATION_ERROR = "validation_error"
    CLIENT_ERROR = "client_error"
    UPSTREAM_ERROR = "upstream_error"
    SAFETY_BLOCKED = "safety_blocked"
    NO_IMAGE = "no_image"
    SERVER_ERROR = "server_error"
    UNKNOWN_ERROR = "unknown_error"


def _validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        if IMAGE_FIELDS.intersection(str(loc) for loc in error.get("loc", ())):
            return UploadValidationError().message
    return "Invalid request parameters."


class ErrorHandler:
    """统一错误处理器"""

    def __init__(self):
        self.error_mappings = self._setup_error_mappings()

    def _setup_error_mappings(self) -> Dict[Type[Exception], Dict[str, Any]]:
        """设置错误映射，按顺序匹配，子类必须排在父类之前"""
        return {
            UploadValidationError: {
                "category": ErrorCategory.VALIDATION_ERROR,
                "get_message": lambda e: e.message,
                "get_status_code": lambda e: e.status_code
            },

            SafetyBlockedError: {
                "category": ErrorCategory.SAFETY_BLOCKED,
                "get_message": lambda e: e.message,
                "get_status_code": lambda e: e.status_code
            },

            NoImageReturnedError: {
                "category": ErrorCategory.NO_IMAGE,
                "get_message": lambda e: e.message,
                "get_status_code": lambda e: e.status_code
            },

            UpstreamError: {
                "category": ErrorCategory.UPSTREAM_ERROR,
                "get_message": lambda e: e.message,
                "get_status_code": lambda e: e.status_code
            },

            RelayError: {
                "category": ErrorCategory.SERVER_ERROR,
                "get_message": lambda e: e.message or UNKNOWN_ERROR_MESSAGE,
                "get_status_code": lambda e: e.status_code
            },

            # 请求验证异常
            RequestValidationError: {
                "category": ErrorCategory.VALIDATION_ERROR,
                "get_message": _validation_message,
                "get_status_code": lambda e: 400
            },

            # FastAPI / Starlette HTTP 异常
            StarletteHTTPException: {
                "category": ErrorCategory.CLIENT_ERROR,
                "get_message": lambda e: str(e.detail),
                "get_status_code": lambda e: e.status_code
            },
        }

    def handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """处理异常并返回统一格式的响应"""

        error_info = self._get_error_info(exc)

        self._log_error(request, exc, error_info)

        error_response = ErrorResponse(error=error_info["message"])

        return JSONResponse(
            status_code=error_info["status_code"],
            content=error_response.dict()
        )

    def _get_error_info(self, exc: Exception) -> Dict[str, Any]:
        """获取错误信息"""
        for error_type, mapping in self.error_mappings.items():
            if isinstance(exc, error_type):
                return {
                    "category": mapping["category"],
                    "message": mapping["get_message"](exc),
                    "status_code": mapping["get_status_code"](exc)
                }

        # 未知错误使用异常信息，为空时使用通用信息
        return {
            "category": ErrorCategory.UNKNOWN_ERROR,
            "message": str(exc) or UNKNOWN_ERROR_MESSAGE,
            "status_code": 500
        }

    def _log_error(self, request: Request, exc: Exception, error_info: Dict[str, Any]):
        """记录错误日志"""

        status_code = error_info["status_code"]
        if status_code >= 500:
            log_level = "error"
        elif status_code >= 400:
            log_level = "warning"
        else:
            log_level = "info"

        log_context = {
            "error_category": error_info["category"].value,
            "status_code": status_code,
            "path": str(request.url.path),
            "method": request.method,
            "client_ip": get_client_ip(request),
            "exception_type": type(exc).__name__
        }

        if isinstance(exc, UpstreamError) and exc.upstream_status is not None:
            log_context["upstream_status"] = exc.upstream_status

        log_method = getattr(logger, log_level)
        log_method(
            f"Request failed: {error_info['message']}",
            **log_context,
            exc_info=exc if error_info["category"] is ErrorCategory.UNKNOWN_ERROR else False
        )


def get_client_ip(request: Request) -> str:
    """获取客户端 IP 地址"""
    # 优先使用 X-Forwarded-For 头
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # 使用 X-Real-IP 头
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


# 全局错误处理器实例
error_handler = ErrorHandler()
