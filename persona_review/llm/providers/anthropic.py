"""Anthropic Messages API provider.

Anthropic has no JSON mode, so reviews rely on the prompt asking for strict
JSON and on the response parser stripping whatever the model wraps it in.
"""

import os
import time
from typing import Any

from anthropic import AsyncAnthropic, APIConnectionError, APIStatusError, APITimeoutError

from ..errors import (
    AuthenticationError,
    ContentFilterError,
    ProviderError,
    TimeoutError,
    error_for_status,
    parse_retry_after,
)
from ..models import ChatMessage, LLMRequest, LLMResponse, Usage
from .base import LLMProvider, elapsed_ms

DEFAULT_MAX_TOKENS = 4096

# Anthropic stop reasons -> finish reasons used across providers
STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
}


def split_system(messages: list[ChatMessage]) -> tuple[str | None, list[dict[str, str]]]:
    """Separate system text (a top-level parameter for Anthropic) from the turns."""
    system = [m.content for m in messages if m.role == "system"]
    turns = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]
    return ("\n\n".join(system) if system else None), turns


class AnthropicProvider(LLMProvider):
    """Claude models through the Messages API."""

    SUPPORTED_FEATURES = {"system_message"}

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        default_model: str = "claude-sonnet-4-5-20250929",
    ):
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._timeout = timeout
        self._default_model = default_model
        self._client: AsyncAnthropic | None = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def client(self) -> AsyncAnthropic:
        """SDK client, created on first use so a missing key fails the call, not startup."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "Anthropic API key missing. Set ANTHROPIC_API_KEY environment variable.",
                    provider=self.name,
                )
            self._client = AsyncAnthropic(api_key=self._api_key, timeout=self._timeout)
        return self._client

    async def generate(self, request: LLMRequest) -> LLMResponse:
        started = time.perf_counter()
        params = self._build_request(request)

        try:
            message = await self.client.messages.create(**params)
        except APITimeoutError as e:
            raise TimeoutError(
                f"Anthropic request timed out after {self._timeout}s",
                provider=self.name,
            ) from e
        except APIConnectionError as e:
            raise ProviderError(f"Failed to connect to Anthropic: {e}", provider=self.name) from e
        except APIStatusError as e:
            self._handle_api_error(e)

        return self._parse_response(message, elapsed_ms(started))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _build_request(self, request: LLMRequest) -> dict[str, Any]:
        system, turns = split_system(request.messages)
        params: dict[str, Any] = {
            "model": request.model or self._default_model,
            "messages": turns,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            # Anthropic accepts 0-1 only
            "temperature": min(request.temperature, 1.0),
        }
        if system:
            params["system"] = system
        return params

    def _parse_response(self, message: Any, latency_ms: int) -> LLMResponse:
        if not isinstance(getattr(message, "content", None), list):
            raise ProviderError(
                "Anthropic returned a message without content blocks",
                provider=self.name,
                request_id=getattr(message, "id", None),
            )
        texts = [block.text for block in message.content if block.type == "text"]
        prompt_tokens = message.usage.input_tokens
        completion_tokens = message.usage.output_tokens

        return LLMResponse(
            text="\n".join(texts) if texts else None,
            finish_reason=STOP_REASONS.get(message.stop_reason, message.stop_reason or "stop"),
            usage=Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            model=message.model,
            provider=self.name,
            latency_ms=latency_ms,
            request_id=message.id,
        )

    def _handle_api_error(self, error: APIStatusError) -> None:
        """Raise the LLMError matching an Anthropic status error."""
        message = str(getattr(error, "message", error))
        request_id = getattr(error, "request_id", None)

        if error.status_code == 400 and ("safety" in message.lower() or "harmful" in message.lower()):
            raise ContentFilterError(
                f"Content blocked by Anthropic safety filters: {message}",
                provider=self.name,
                request_id=request_id,
            ) from error

        raise error_for_status(
            error.status_code,
            message,
            provider=self.name,
            request_id=request_id,
            retry_after=parse_retry_after(getattr(getattr(error, "response", None), "headers", None)),
        ) from error
