"""Provider interface shared by OpenRouter, Ollama and Anthropic."""

import time
from abc import ABC, abstractmethod
from typing import ClassVar

from ..models import LLMRequest, LLMResponse


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return int((time.perf_counter() - started) * 1000)


class LLMProvider(ABC):
    """One chat-completion backend.

    The client only ever calls ``generate`` and ``supports``, so the review
    pipeline behaves the same whichever backend is configured.
    """

    # Capabilities the backend offers, e.g. "json_object", "system_message"
    SUPPORTED_FEATURES: ClassVar[set[str]] = set()

    @property
    @abstractmethod
    def name(self) -> str:
        """Short id used in logs and errors ('openrouter', 'ollama', 'anthropic')."""

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Run one completion.

        Every failure is raised as an LLMError subclass chosen by
        ``error_for_status`` or by the provider's own moderation check;
        SDK and httpx exceptions never leak out.
        """

    def supports(self, feature: str) -> bool:
        return feature in self.SUPPORTED_FEATURES

    async def aclose(self) -> None:
        """Release the underlying HTTP client, if any."""
