"""
中继服务异常类定义
"""

from typing import Optional


UNKNOWN_ERROR_MESSAGE = "An unknown server error occurred."


class RelayError(Exception):
    """中继服务基础异常类"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UploadValidationError(RelayError):
    """上传图像缺失"""
    status_code = 400

    def __init__(self, message: str = "Please upload two images."):
        super().__init__(message)


class UpstreamError(RelayError):
    """上游接口返回非成功状态"""
    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class NoImageReturnedError(RelayError):
    """上游响应中没有图像数据"""
    def __init__(self, message: str = "The model did not return an image. Please try again.",
                 finish_reason: Optional[str] = None):
        super().__init__(message)
        self.finish_reason = finish_reason


class SafetyBlockedError(NoImageReturnedError):
    """图像生成被安全策略拦截"""
    def __init__(self, message: str = "Image generation blocked due to safety settings."):
        super().__init__(message, finish_reason="SAFETY")


class ConfigurationError(ValueError):
    """启动配置错误"""
    pass
