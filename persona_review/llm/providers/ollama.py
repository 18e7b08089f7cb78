"""Ollama provider implementation.

Talks to a local Ollama server's /api/chat endpoint with httpx.
Streaming is disabled; the whole reply arrives in one JSON body.
"""

import os
import time
from typing import Any

import httpx

from ..errors import (
    ModelNotFoundError,
    ProviderError,
    TimeoutError,
    error_for_status,
)
from ..models import LLMRequest, LLMResponse, Usage
from .base import LLMProvider, elapsed_ms

OLLAMA_BASE_URL = "http://127.0.0.1:11434"
DEFAULT_SYSTEM_PROMPT = "You are a precise reviewer."


class OllamaProvider(LLMProvider):
    """Local Ollama chat provider.

    No API key is needed. A model that has not been pulled answers 404,
    which maps to ModelNotFoundError.
    """

    SUPPORTED_FEATURES = {
        "json_object",
        "system_message",
    }

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 60.0,
        default_model: str = "llama3.1:8b",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Ollama provider.

        Args:
            base_url: Server root. Defaults to OLLAMA_BASE_URL env var or localhost.
            timeout: Request timeout in seconds.
            default_model: Model to use if the request does not name one.
            transport: Optional httpx transport (used by tests).
        """
        self._base_url = (base_url or os.environ.get("OLLAMA_BASE_URL") or OLLAMA_BASE_URL).rstrip("/")
        self._timeout = timeout
        self._default_model = default_model
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        """Provider identifier."""
        return "ollama"

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialized HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Send a chat request to Ollama.

        Raises:
            Various LLMError subclasses based on the error type.
        """
        start_time = time.perf_counter()
        payload = self._build_request(request)

        try:
            response = await self.client.post("/api/chat", json=payload)
        except httpx.TimeoutException as e:
            raise TimeoutError(
                f"Ollama request timed out after {self._timeout}s",
                provider=self.name,
            ) from e
        except httpx.TransportError as e:
            raise ProviderError(
                f"Failed to connect to Ollama at {self._base_url}: {e}",
                provider=self.name,
            ) from e

        if response.status_code >= 400:
            self._handle_status_error(response)

        latency_ms = elapsed_ms(start_time)
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                "Ollama returned a non-JSON body",
                provider=self.name,
            ) from e
        return self._parse_response(data, latency_ms, payload["model"])

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_request(self, request: LLMRequest) -> dict[str, Any]:
        """Convert LLMRequest to the /api/chat payload."""
        messages = [{"role": msg.role, "content": msg.content} for msg in request.messages]
        if request.system_prompt is None:
            messages.insert(0, {"role": "system", "content": DEFAULT_SYSTEM_PROMPT})

        options: dict[str, Any] = {"temperature": request.temperature}
        if request.max_tokens:
            options["num_predict"] = request.max_tokens

        payload: dict[str, Any] = {
            "model": request.model or self._default_model,
            "messages": messages,
            "options": options,
            "stream": False,
        }
        if request.response_format and request.response_format.type == "json_object":
            payload["format"] = "json"
        return payload

    def _parse_response(self, data: Any, latency_ms: int, model: str) -> LLMResponse:
        """Convert an /api/chat body to LLMResponse.

        Raises:
            ProviderError: The body is not a chat response object.
        """
        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict) or not isinstance(message.get("content"), (str, type(None))):
            raise ProviderError(
                f"Ollama returned an unexpected response shape: {str(data)[:200]}",
                provider=self.name,
            )
        prompt_tokens = int(data.get("prompt_eval_count") or 0)
        completion_tokens = int(data.get("eval_count") or 0)

        return LLMResponse(
            text=message.get("content"),
            finish_reason=data.get("done_reason") or "stop",
            usage=Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            model=data.get("model") or model,
            provider=self.name,
            latency_ms=latency_ms,
        )

    def _handle_status_error(self, response: httpx.Response) -> None:
        """Convert HTTP error statuses to LLMError types."""
        try:
            body = response.json()
        except ValueError:
            body = None
        message = body.get("error", response.text) if isinstance(body, dict) else response.text

        if response.status_code == 404:
            raise ModelNotFoundError(
                f"Ollama model not found (pull it first): {message}",
                provider=self.name,
            )
        raise error_for_status(response.status_code, message, provider=self.name)
