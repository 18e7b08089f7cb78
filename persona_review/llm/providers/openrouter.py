"""OpenRouter provider implementation.

OpenRouter exposes an OpenAI-compatible Chat Completions API, so the
`openai` SDK is used with a base_url override and OpenRouter's attribution
headers.
"""

import os
import time
from typing import Any

from openai import AsyncOpenAI, APIConnectionError, APIStatusError, APITimeoutError

from ..errors import (
    AuthenticationError,
    ContentFilterError,
    ProviderError,
    TimeoutError,
    error_for_status,
    parse_retry_after,
)
from ..models import LLMRequest, LLMResponse, Usage
from .base import LLMProvider, elapsed_ms

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_SYSTEM_PROMPT = "You are a precise reviewer."


class OpenRouterProvider(LLMProvider):
    """OpenRouter chat completions provider.

    Supports:
    - Any model routed by OpenRouter (default: openrouter/auto)
    - Basic JSON mode via response_format
    """

    SUPPORTED_FEATURES = {
        "json_object",
        "system_message",
    }

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        default_model: str = "openrouter/auto",
        base_url: str | None = None,
        app_title: str = "Persona Review",
        referer: str = "https://persona-review.local",
    ):
        """Initialize OpenRouter provider.

        Args:
            api_key: OpenRouter API key. Defaults to OPENROUTER_API_KEY env var.
            timeout: Request timeout in seconds.
            default_model: Model to use if the request does not name one.
            base_url: Override for the API root (tests, proxies).
            app_title: Sent as X-Title for OpenRouter attribution.
            referer: Sent as HTTP-Referer for OpenRouter attribution.
        """
        self._api_key = api_key or os.environ.get("OPENROUTER_API_KEY")
        self._timeout = timeout
        self._default_model = default_model
        self._base_url = base_url or OPENROUTER_BASE_URL
        self._headers = {"HTTP-Referer": referer, "X-Title": app_title}
        self._client: AsyncOpenAI | None = None

    @property
    def name(self) -> str:
        """Provider identifier."""
        return "openrouter"

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-initialized OpenAI-compatible client."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "OpenRouter API key missing. Set OPENROUTER_API_KEY environment variable.",
                    provider=self.name,
                )
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                default_headers=self._headers,
            )
        return self._client

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Send a completion request to OpenRouter.

        Raises:
            Various LLMError subclasses based on the error type.
        """
        start_time = time.perf_counter()

        payload = self._build_request(request)

        try:
            response = await self.client.chat.completions.create(**payload)
            latency_ms = elapsed_ms(start_time)
            return self._parse_response(response, latency_ms)

        except APITimeoutError as e:
            raise TimeoutError(
                f"OpenRouter request timed out after {self._timeout}s",
                provider=self.name,
            ) from e

        except APIConnectionError as e:
            raise ProviderError(
                f"Failed to connect to OpenRouter: {e}",
                provider=self.name,
            ) from e

        except APIStatusError as e:
            self._handle_api_error(e)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _build_request(self, request: LLMRequest) -> dict[str, Any]:
        """Convert LLMRequest to the chat completions payload."""
        messages = [{"role": msg.role, "content": msg.content} for msg in request.messages]
        if request.system_prompt is None:
            messages.insert(0, {"role": "system", "content": DEFAULT_SYSTEM_PROMPT})

        payload: dict[str, Any] = {
            "model": request.model or self._default_model,
            "messages": messages,
            "temperature": request.temperature,
        }

        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens

        if request.response_format and request.response_format.type == "json_object":
            payload["response_format"] = {"type": "json_object"}

        return payload

    def _parse_response(self, response: Any, latency_ms: int) -> LLMResponse:
        """Convert a chat completion to LLMResponse."""
        if not getattr(response, "choices", None) or getattr(response.choices[0], "message", None) is None:
            raise ProviderError(
                "OpenRouter returned no choices",
                provider=self.name,
                request_id=getattr(response, "id", None),
            )
        choice = response.choices[0]
        usage = response.usage
        if not isinstance(choice.message.content, (str, type(None))):
            raise ProviderError(
                "OpenRouter returned non-text message content",
                provider=self.name,
                request_id=getattr(response, "id", None),
            )

        return LLMResponse(
            text=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=Usage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            model=response.model or self._default_model,
            provider=self.name,
            latency_ms=latency_ms,
            request_id=response.id,
        )

    def _handle_api_error(self, error: APIStatusError) -> None:
        """Convert API status errors to LLMError types."""
        message = str(getattr(error, "message", error))
        request_id = getattr(error, "request_id", None)

        # OpenRouter reports moderation blocks as 403
        if error.status_code == 403 and ("moderation" in message.lower() or "flagged" in message.lower()):
            raise ContentFilterError(
                f"Content blocked by OpenRouter moderation: {message}",
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
