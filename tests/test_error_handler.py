"""
错误处理系统测试

测试统一错误处理和响应格式化功能。
"""

import json

import pytest
from unittest.mock import Mock
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError

from services.error_handler import ErrorHandler, ErrorCategory, get_client_ip
from services.exceptions import (
    RelayError, UploadValidationError, UpstreamError,
    NoImageReturnedError, SafetyBlockedError
)


class TestErrorHandler:
    """错误处理器测试"""

    def setup_method(self):
        """设置测试"""
        self.error_handler = ErrorHandler()
        self.mock_request = Mock(spec=Request)
        self.mock_request.url.path = "/api/hug"
        self.mock_request.method = "POST"
        self.mock_request.headers = {"user-agent": "test-client"}
        self.mock_request.client.host = "127.0.0.1"

    def handle(self, exc):
        response = self.error_handler.handle_exception(self.mock_request, exc)
        return response.status_code, json.loads(response.body)

    def test_upload_validation_error(self):
        """测试缺少图像"""
        status_code, body = self.handle(UploadValidationError())

        assert status_code == 400
        assert body == {"error": "Please upload two images."}

    def test_upstream_error(self):
        """测试上游错误"""
        status_code, body = self.handle(UpstreamError("Quota exceeded", upstream_status=429))

        assert status_code == 500
        assert body == {"error": "Quota exceeded"}

    def test_safety_blocked_error(self):
        status_code, body = self.handle(SafetyBlockedError())

        assert status_code == 500
        assert body == {"error": "Image generation blocked due to safety settings."}

    def test_no_image_error(self):
        status_code, body = self.handle(NoImageReturnedError())

        assert status_code == 500
        assert body == {"error": "The model did not return an image. Please try again."}

    def test_relay_error_without_message(self):
        status_code, body = self.handle(RelayError(""))

        assert status_code == 500
        assert body == {"error": "An unknown server error occurred."}

    def test_http_exception_handling(self):
        """测试 HTTP 异常处理"""
        status_code, body = self.handle(HTTPException(status_code=404, detail="Not found"))

        assert status_code == 404
        assert body == {"error": "Not found"}

    def test_request_validation_error_on_image_field(self):
        """测试图像字段验证错误"""
        exc = RequestValidationError([
            {"loc": ("body", "image1", 0), "msg": "Expected UploadFile", "type": "value_error"}
        ])

        status_code, body = self.handle(exc)

        assert status_code == 400
        assert body == {"error": "Please upload two images."}

    def test_request_validation_error_other_field(self):
        exc = RequestValidationError([
            {"loc": ("query", "page"), "msg": "field required", "type": "missing"}
        ])

        status_code, body = self.handle(exc)

        assert status_code == 400
        assert body == {"error": "Invalid request parameters."}

    def test_unknown_exception(self):
        """测试未知异常使用异常信息"""
        status_code, body = self.handle(ValueError("something broke"))

        assert status_code == 500
        assert body == {"error": "something broke"}

    def test_unknown_exception_without_message(self):
        status_code, body = self.handle(RuntimeError())

        assert status_code == 500
        assert body == {"error": "An unknown server error occurred."}

    @pytest.mark.parametrize("exc, category", [
        (UploadValidationError(), ErrorCategory.VALIDATION_ERROR),
        (SafetyBlockedError(), ErrorCategory.SAFETY_BLOCKED),
        (NoImageReturnedError(), ErrorCategory.NO_IMAGE),
        (UpstreamError("x"), ErrorCategory.UPSTREAM_ERROR),
        (RelayError("x"), ErrorCategory.SERVER_ERROR),
        (KeyError("x"), ErrorCategory.UNKNOWN_ERROR),
    ])
    def test_error_categories(self, exc, category):
        """测试错误分类，子类优先匹配"""
        assert self.error_handler._get_error_info(exc)["category"] is category


class TestClientIp:
    """客户端 IP 获取测试"""

    def make_request(self, headers, host="10.0.0.1"):
        request = Mock(spec=Request)
        request.headers = headers
        request.client.host = host
        return request

    def test_forwarded_for(self):
        request = self.make_request({"x-forwarded-for": "1.2.3.4, 5.6.7.8"})
        assert get_client_ip(request) == "1.2.3.4"

    def test_real_ip(self):
        request = self.make_request({"x-real-ip": "9.9.9.9"})
        assert get_client_ip(request) == "9.9.9.9"

    def test_client_host(self):
        assert get_client_ip(self.make_request({})) == "10.0.0.1"

    def test_unknown(self):
        request = Mock(spec=Request)
        request.headers = {}
        request.client = None
        assert get_client_ip(request) == "unknown"
