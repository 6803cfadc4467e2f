"""
数据模型包

包含上游请求、上游响应以及 API 响应的数据模型定义。
"""

from .requests import HUG_PROMPT, UploadedImage, GenerationRequest
from .responses import GenerationResponse, HugResponse, HealthResponse, ErrorResponse

__all__ = [
    "HUG_PROMPT",
    "UploadedImage",
    "GenerationRequest",
    "GenerationResponse",
    "HugResponse",
    "HealthResponse",
    "ErrorResponse"
]
