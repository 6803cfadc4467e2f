"""
API 路由定义

包含所有 API 端点的路由处理函数。
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from models.responses import HugResponse, HealthResponse, ErrorResponse
from services.exceptions import RelayError, UNKNOWN_ERROR_MESSAGE
from services.gemini_client import GeminiClient
from services.request_processor import RequestProcessor
from services.logging import get_logger

logger = get_logger(__name__)

# 创建路由器
router = APIRouter()


def get_gemini_client(request: Request) -> GeminiClient:
    """依赖注入：获取 Gemini 客户端"""
    return request.app.state.relay.get_gemini_client()


def get_request_processor(request: Request) -> RequestProcessor:
    """依赖注入：获取请求处理器"""
    return request.app.state.relay.get_request_processor()


@router.post(
    "/api/hug",
    response_model=HugResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def hug(
    image1: Optional[List[UploadFile]] = File(None, description="第一张人物图像"),
    image2: Optional[List[UploadFile]] = File(None, description="第二张人物图像"),
    gemini_client: GeminiClient = Depends(get_gemini_client),
    request_processor: RequestProcessor = Depends(get_request_processor)
):
    """
    拥抱合成 API 端点

    接收两张图像，调用 Gemini 生成两人拥抱的图像并以 data URI 返回
    """
    try:
        images = await request_processor.collect_images(image1, image2)

        generation_request = request_processor.build_generation_request(images)

        logger.info("Calling Gemini API...", model=gemini_client.model)
        result = await gemini_client.generate_content(generation_request.to_payload())

        generation_response = request_processor.parse_generation_response(result)
        image_url = request_processor.extract_image_url(generation_response)

    except RelayError as e:
        logger.error("Hug generation failed", error=e.message, status_code=e.status_code)
        raise
    except Exception as e:
        logger.error("Hug generation failed", error=str(e), exc_info=e)
        raise RelayError(str(e) or UNKNOWN_ERROR_MESSAGE) from e

    return HugResponse(imageUrl=image_url)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """健康检查端点"""
    relay = request.app.state.relay
    return HealthResponse(
        status="ok",
        model=relay.get_gemini_client().model,
        uptime=relay.get_uptime(),
        timestamp=datetime.now()
    )
