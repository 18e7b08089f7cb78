"""Unit tests for LLM data models and error classes.

Tests cover:
- Model instantiation and validation
- Error hierarchy and attributes
- Error classification (retryable vs non-retryable)
"""

import pytest
from pydantic import ValidationError

from persona_review.llm.errors import (
    AuthenticationError,
    ContentFilterError,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TimeoutError,
    error_for_status,
    parse_retry_after,
)
from persona_review.llm.models import ChatMessage, LLMRequest, LLMResponse, ResponseFormat, Usage


class TestChatMessage:
    def test_roles(self):
        for role in ("system", "user", "assistant"):
            assert ChatMessage(role=role, content="x").role == role

    def test_tool_role_rejected(self):
        with pytest.raises(ValidationError):
            ChatMessage(role="tool", content="x")


class TestLLMRequest:
    def test_defaults(self):
        request = LLMRequest(messages=[ChatMessage(role="user", content="Hi")], model="m")
        assert request.temperature == 0.2
        assert request.max_tokens is None
        assert request.response_format is None
        assert request.system_prompt is None

    def test_system_prompt_is_first_system_message(self):
        request = LLMRequest(
            messages=[
                ChatMessage(role="user", content="Hi"),
                ChatMessage(role="system", content="first"),
                ChatMessage(role="system", content="second"),
            ],
            model="m",
        )
        assert request.system_prompt == "first"

    def test_exchange_drops_empty_system_prompt(self):
        request = LLMRequest.exchange("", "Review this", model="m", json_mode=True)

        assert [m.role for m in request.messages] == ["user"]
        assert request.response_format.type == "json_object"

    def test_temperature_bounds(self):
        with pytest.raises(ValidationError):
            LLMRequest(messages=[], model="m", temperature=2.5)

    def test_response_format_types(self):
        assert ResponseFormat(type="json_object").type == "json_object"
        with pytest.raises(ValidationError):
            ResponseFormat(type="json_schema")


class TestLLMResponse:
    def test_usage_defaults(self):
        response = LLMResponse(text=None, model="m", provider="ollama")
        assert response.usage == Usage()
        assert response.finish_reason == "stop"
        assert response.latency_ms == 0


class TestErrors:
    def test_str_includes_provider_and_request_id(self):
        error = ProviderError("boom", provider="openrouter", request_id="req-1")
        assert str(error) == "boom provider=openrouter request_id=req-1"

    def test_rate_limit_retry_after(self):
        error = RateLimitError("slow down", retry_after=2.5, provider="openrouter")
        assert error.retry_after == 2.5
        assert error.provider == "openrouter"

    def test_hierarchy(self):
        for cls in (
            AuthenticationError,
            RateLimitError,
            TimeoutError,
            InvalidRequestError,
            ContentFilterError,
            ProviderError,
            ModelNotFoundError,
        ):
            assert issubclass(cls, LLMError)

    def test_retryable_flag(self):
        for cls in (RateLimitError, TimeoutError, ProviderError):
            assert cls("x").retryable is True
        for cls in (LLMError, AuthenticationError, InvalidRequestError, ContentFilterError, ModelNotFoundError):
            assert cls("x").retryable is False


class TestErrorForStatus:
    @pytest.mark.parametrize(
        "status_code,expected",
        [
            (400, InvalidRequestError),
            (401, AuthenticationError),
            (402, AuthenticationError),
            (403, AuthenticationError),
            (404, ModelNotFoundError),
            (408, TimeoutError),
            (429, RateLimitError),
            (500, ProviderError),
            (503, ProviderError),
            (418, LLMError),
        ],
    )
    def test_mapping(self, status_code, expected):
        error = error_for_status(status_code, "nope", provider="ollama", request_id="r1")

        assert type(error) is expected
        assert error.provider == "ollama"
        assert error.request_id == "r1"
        assert f"({status_code}): nope" in str(error)

    def test_rate_limit_carries_retry_after(self):
        error = error_for_status(429, "slow", provider="openrouter", retry_after=4.0)
        assert error.retry_after == 4.0


class TestParseRetryAfter:
    @pytest.mark.parametrize(
        "headers,expected",
        [
            ({"retry-after": "7"}, 7.0),
            ({"retry-after": "0.5"}, 0.5),
            ({"retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"}, None),
            ({}, None),
            (None, None),
        ],
    )
    def test_values(self, headers, expected):
        assert parse_retry_after(headers) == expected
