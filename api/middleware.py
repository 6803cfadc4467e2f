"""
API 中间件

请求日志和请求 ID 追踪。
"""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from services.error_handler import get_client_ip
from services.logging import set_request_context, clear_request_context, get_logger


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """请求日志和追踪中间件"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        """处理请求日志和追踪"""

        # 优先沿用调用方传入的请求 ID
        request_id = set_request_context(request.headers.get("x-request-id") or None)

        logger = get_logger("request")
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=get_client_ip(request),
            content_length=request.headers.get("content-length", "0")
        )

        try:
            response = await call_next(request)

            duration = time.time() - start_time

            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration=round(duration, 3)
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{duration:.3f}"

            return response

        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                duration=round(time.time() - start_time, 3)
            )
            raise
        finally:
            clear_request_context()
