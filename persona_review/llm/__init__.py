"""LLM provider abstraction layer.

Vendor-neutral access to OpenRouter, a local Ollama server or Anthropic,
with retry and timeout handling in one client.
"""

from .client import LLMClient, create_provider
from .errors import (
    AuthenticationError,
    ContentFilterError,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TimeoutError,
)
from .models import ChatMessage, LLMRequest, LLMResponse, ResponseFormat, Usage

__all__ = [
    "LLMClient",
    "create_provider",
    "LLMRequest",
    "LLMResponse",
    "ChatMessage",
    "ResponseFormat",
    "Usage",
    "LLMError",
    "AuthenticationError",
    "RateLimitError",
    "TimeoutError",
    "InvalidRequestError",
    "ContentFilterError",
    "ModelNotFoundError",
    "ProviderError",
]
