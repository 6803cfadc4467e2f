"""
上游请求模型定义

包含上传图像和 Gemini 生成请求的数据模型，使用 Pydantic 进行数据验证。
"""

import base64
from typing import Any, Dict, List

from pydantic import BaseModel, Field, validator


HUG_PROMPT = (
    "Make these two people hug. Create a photorealistic, loving image of these "
    "two subjects embracing in a new, single image. Do not just return one of the inputs."
)

IMAGE_FIELDS = ("image1", "image2")


class UploadedImage(BaseModel):
    """单个上传图像，仅在请求期间保存在内存中"""

    field_name: str = Field(..., description="表单字段名 (image1/image2)")
    mime_type: str = Field(..., description="上传时声明的媒体类型")
    data: bytes = Field(..., description="图像二进制内容")

    class Config:
        frozen = True

    @validator('field_name')
    def validate_field_name(cls, v):
        if v not in IMAGE_FIELDS:
            raise ValueError(f"字段名必须是 {IMAGE_FIELDS} 中的一个")
        return v

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_inline_part(self) -> Dict[str, Any]:
        """转换为 Gemini inlineData 内容块"""
        return {
            "inlineData": {
                "mimeType": self.mime_type,
                "data": self.to_base64()
            }
        }


class GenerationRequest(BaseModel):
    """Gemini 图像生成请求，构建后不可修改"""

    prompt: str = Field(HUG_PROMPT, min_length=1, description="固定的生成指令")
    images: List[UploadedImage] = Field(..., description="按 image1, image2 顺序排列的图像")
    response_modalities: List[str] = Field(default=["IMAGE"], description="请求的输出模态")

    class Config:
        frozen = True

    @validator('images')
    def validate_images(cls, v):
        if len(v) != len(IMAGE_FIELDS):
            raise ValueError("需要恰好两张图像")
        if tuple(image.field_name for image in v) != IMAGE_FIELDS:
            raise ValueError("图像顺序必须是 image1, image2")
        return v

    def to_payload(self) -> Dict[str, Any]:
        """
        生成 generateContent 请求体

        Returns:
            Dict[str, Any]: 指令文本在前，随后依次为 image1 和 image2
        """
        parts: List[Dict[str, Any]] = [{"text": self.prompt}]
        parts.extend(image.to_inline_part() for image in self.images)
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseModalities": list(self.response_modalities)
            }
        }
