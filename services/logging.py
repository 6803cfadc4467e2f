"""
结构化日志系统

提供统一的日志配置和请求上下文追踪功能。
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Optional
from contextvars import ContextVar
from functools import wraps

import structlog
from structlog.stdlib import LoggerFactory

# 请求上下文变量
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


def add_request_context(logger, method_name, event_dict):
    """添加请求上下文到日志"""
    request_id = request_id_var.get('')

    if request_id:
        event_dict['request_id'] = request_id

    return event_dict


def add_timestamp(logger, method_name, event_dict):
    """添加时间戳到日志"""
    event_dict['timestamp'] = datetime.now().isoformat()
    return event_dict


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None, json_format: bool = False):
    """配置结构化日志"""

    # 配置 structlog
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_request_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 配置标准库日志，替换启动阶段已安装的处理器
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(message)s",
        force=True,
        handlers=[
            logging.StreamHandler(),
            *([logging.FileHandler(log_file, encoding='utf-8')] if log_file else [])
        ]
    )
    logging.getLogger().setLevel(getattr(logging, log_level.upper()))

    # 降低 httpx 日志噪音
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """获取结构化日志器"""
    return structlog.get_logger(name)


def set_request_context(request_id: str = None) -> str:
    """设置请求上下文"""
    if request_id is None:
        request_id = str(uuid.uuid4())

    request_id_var.set(request_id)
    return request_id


def clear_request_context():
    """清除请求上下文"""
    request_id_var.set('')


def log_duration(func_name: str = None):
    """记录异步调用耗时的装饰器"""
    def decorator(func):
        if not asyncio.iscoroutinefunction(func):
            raise TypeError("log_duration 只能用于异步函数")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(func_name or func.__name__)
            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "Call failed",
                    function=func.__name__,
                    duration=round(time.time() - start_time, 3),
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise

            logger.info(
                "Call completed",
                function=func.__name__,
                duration=round(time.time() - start_time, 3)
            )
            return result

        return wrapper

    return decorator
