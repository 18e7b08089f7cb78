"""Request and response shapes passed between the client and providers.

Reviews only ever send one system prompt and one user prompt, so the
message model carries plain text and nothing else.
"""

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ResponseFormat(BaseModel):
    """Output format hint. Only providers with a JSON mode honour `json_object`."""

    type: Literal["text", "json_object"]


class LLMRequest(BaseModel):
    """One completion call, independent of the backend that serves it."""

    messages: list[ChatMessage]
    model: str
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_tokens: int | None = None
    response_format: ResponseFormat | None = None

    @classmethod
    def exchange(
        cls,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float = 0.2,
        json_mode: bool = False,
    ) -> "LLMRequest":
        """System + user request; an empty system prompt is left out."""
        messages = [ChatMessage(role="system", content=system_prompt)] if system_prompt else []
        messages.append(ChatMessage(role="user", content=user_prompt))
        return cls(
            messages=messages,
            model=model,
            temperature=temperature,
            response_format=ResponseFormat(type="json_object") if json_mode else None,
        )

    @property
    def system_prompt(self) -> str | None:
        """Content of the first system message, if any."""
        return next((m.content for m in self.messages if m.role == "system"), None)


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """What a provider returns. ``text`` is None when the model sent no text."""

    text: str | None
    finish_reason: str = "stop"
    usage: Usage = Field(default_factory=Usage)
    model: str
    provider: str
    latency_ms: int = 0
    request_id: str | None = None
