"""
Gemini 上游客户端

负责调用 Gemini generateContent 接口。每次调用使用独立的 httpx 客户端，
不在请求之间共享连接池。
"""

from typing import Any, Dict, Optional

import httpx

from config.models import GeminiConfig, DEFAULT_GEMINI_BASE_URL, DEFAULT_GEMINI_MODEL
from services.exceptions import UpstreamError
from services.logging import get_logger, log_duration

logger = get_logger(__name__)


class GeminiClient:
    """Gemini 图像生成接口客户端"""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        初始化客户端

        Args:
            api_key: Gemini API 密钥
            model: 模型名称
            base_url: API 基础地址
            timeout: 请求超时时间（秒），None 表示一直等待上游返回
            transport: 自定义 httpx 传输层（测试时注入）
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: GeminiConfig, **kwargs) -> "GeminiClient":
        return cls(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
            **kwargs
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    @log_duration("gemini")
    async def generate_content(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        发送一次非流式 generateContent 请求

        Args:
            payload: Gemini 格式的请求体

        Returns:
            Dict[str, Any]: 上游返回的 JSON 响应

        Raises:
            UpstreamError: 网络失败、非 2xx 状态或响应无法解析
        """
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.error("Gemini API request error", model=self.model, error=str(e))
            raise UpstreamError(f"Failed to reach Gemini API: {e}") from e

        if not response.is_success:
            message = self._extract_error_message(response)
            logger.error(
                "Gemini API error",
                status_code=response.status_code,
                body=response.text[:2000]
            )
            raise UpstreamError(message, upstream_status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.error("Gemini API returned invalid JSON", body=response.text[:2000])
            raise UpstreamError("Gemini API returned an invalid response.",
                                upstream_status=response.status_code) from e

    @staticmethod
    def _extract_error_message(response: httpx.Response) -> str:
        """从上游错误响应中提取 error.message，缺失时返回通用信息"""
        fallback = f"Gemini API request failed with status {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return fallback

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
        return fallback
