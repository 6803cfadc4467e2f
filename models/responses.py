"""
API 响应模型定义

包含 Gemini 上游响应的解析模型，以及中继接口返回给调用方的响应模型。
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime


SAFETY_FINISH_REASON = "SAFETY"


class InlineData(BaseModel):
    """内嵌的 base64 数据"""

    mime_type: Optional[str] = Field(None, alias="mimeType")
    data: Optional[str] = None


class Part(BaseModel):
    """候选内容中的单个内容块"""

    text: Optional[str] = None
    inline_data: Optional[InlineData] = Field(None, alias="inlineData")


class Content(BaseModel):
    parts: List[Part] = Field(default_factory=list)

    @validator('parts', pre=True)
    def null_parts(cls, v):
        return [] if v is None else v


class Candidate(BaseModel):
    content: Optional[Content] = None
    finish_reason: Optional[str] = Field(None, alias="finishReason")


class GenerationResponse(BaseModel):
    """Gemini generateContent 响应，未知字段忽略"""

    candidates: List[Candidate] = Field(default_factory=list)

    @validator('candidates', pre=True)
    def null_candidates(cls, v):
        return [] if v is None else v

    @property
    def finish_reason(self) -> Optional[str]:
        """第一个候选结果的结束原因"""
        if not self.candidates:
            return None
        return self.candidates[0].finish_reason

    def first_inline_image(self) -> Optional[InlineData]:
        """返回第一个候选结果中的第一个内嵌数据块，数据为空时视为没有图像"""
        if not self.candidates or self.candidates[0].content is None:
            return None
        for part in self.candidates[0].content.parts:
            if part.inline_data is not None:
                return part.inline_data if part.inline_data.data else None
        return None

    def is_safety_blocked(self) -> bool:
        return self.finish_reason == SAFETY_FINISH_REASON


class HugResponse(BaseModel):
    """合成成功响应"""

    imageUrl: str = Field(description="data URI 形式的生成图像")

    class Config:
        json_schema_extra = {
            "example": {
                "imageUrl": "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8/5+hHgAHggJ/PchI7wAAAABJRU5ErkJggg=="
            }
        }


class HealthResponse(BaseModel):
    """健康检查响应模型"""

    status: str = Field(description="服务状态")
    model: str = Field(description="上游生成模型")
    uptime: float = Field(description="服务运行时间（秒）")
    timestamp: datetime = Field(default_factory=datetime.now, description="检查时间")


class ErrorResponse(BaseModel):
    """错误响应模型"""

    error: str = Field(description="错误信息")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Please upload two images."
            }
        }
