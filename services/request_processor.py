"""
请求处理器

负责读取上传的两张图像、组装 Gemini 生成请求，并从上游响应中提取生成的图像。
"""

from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from pydantic import ValidationError

from models.requests import HUG_PROMPT, UploadedImage, GenerationRequest
from models.responses import GenerationResponse
from services.exceptions import (
    UploadValidationError, UpstreamError, NoImageReturnedError, SafetyBlockedError
)
from services.logging import get_logger

logger = get_logger(__name__)


class RequestProcessor:
    """请求处理器类"""

    # 未声明类型时使用的媒体类型
    DEFAULT_MIME_TYPE = "application/octet-stream"

    # 返回的 data URI 默认标注的图像类型
    OUTPUT_MIME_TYPE = "image/png"

    def __init__(self, prompt: str = HUG_PROMPT, propagate_mime_type: bool = False):
        """
        初始化请求处理器

        Args:
            prompt: 发送给模型的固定指令
            propagate_mime_type: 是否使用上游返回的图像类型构造 data URI
        """
        self.prompt = prompt
        self.propagate_mime_type = propagate_mime_type

    async def read_upload(self, field_name: str, files: Optional[List[UploadFile]]) -> UploadedImage:
        """
        读取表单字段中的第一个文件，其余文件忽略

        Raises:
            UploadValidationError: 字段缺失或没有文件
        """
        if not files:
            raise UploadValidationError()

        upload = files[0]
        try:
            data = await upload.read()
        finally:
            for extra in files:
                await extra.close()

        if len(files) > 1:
            logger.debug("Ignoring extra files", field=field_name, count=len(files) - 1)

        return UploadedImage(
            field_name=field_name,
            mime_type=upload.content_type or self.DEFAULT_MIME_TYPE,
            data=data
        )

    async def collect_images(
        self,
        image1: Optional[List[UploadFile]],
        image2: Optional[List[UploadFile]]
    ) -> List[UploadedImage]:
        """
        校验并读取 image1、image2 两个字段

        两个字段必须都存在后才读取任何内容。
        """
        if not image1 or not image2:
            logger.warning("Upload missing image field",
                           image1_present=bool(image1), image2_present=bool(image2))
            raise UploadValidationError()

        return [
            await self.read_upload("image1", image1),
            await self.read_upload("image2", image2),
        ]

    def build_generation_request(self, images: List[UploadedImage]) -> GenerationRequest:
        """根据两张图像构建生成请求"""
        try:
            return GenerationRequest(prompt=self.prompt, images=images)
        except ValidationError as e:
            raise UploadValidationError() from e

    def parse_generation_response(self, body: Dict[str, Any]) -> GenerationResponse:
        """
        解析上游响应

        Raises:
            UpstreamError: 响应结构不符合预期
        """
        try:
            return GenerationResponse.parse_obj(body)
        except ValidationError as e:
            logger.error("Unexpected Gemini response structure", error=str(e))
            raise UpstreamError("Gemini API returned an unexpected response.") from e

    def extract_image_url(self, response: GenerationResponse) -> str:
        """
        提取第一个候选结果中的图像并包装为 data URI

        Returns:
            str: data:image/png;base64,<data>

        Raises:
            SafetyBlockedError: 因安全策略没有返回图像
            NoImageReturnedError: 没有返回图像
        """
        inline_image = response.first_inline_image()

        if inline_image is None:
            logger.error(
                "Image data not found in response",
                candidates=len(response.candidates),
                finish_reason=response.finish_reason
            )
            if response.is_safety_blocked():
                raise SafetyBlockedError()
            raise NoImageReturnedError(finish_reason=response.finish_reason)

        mime_type = self.OUTPUT_MIME_TYPE
        if self.propagate_mime_type and inline_image.mime_type:
            mime_type = inline_image.mime_type

        return f"data:{mime_type};base64,{inline_image.data}"
