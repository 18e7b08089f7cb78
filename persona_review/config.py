"""Model and review configuration.

Both objects are passed explicitly to the LLM client and the review
orchestrator. The environment is only consulted by ``from_env()``.
"""

from __future__ import annotations

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ProviderName = Literal["openrouter", "ollama", "anthropic"]

# Provider defaults used by the original add-in
DEFAULT_MODELS: dict[str, str] = {
    "openrouter": "openrouter/auto",
    "ollama": "llama3.1:8b",
    "anthropic": "claude-sonnet-4-5-20250929",
}

API_KEY_ENV_VARS: dict[str, str] = {
    "openrouter": "OPENROUTER_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


class ModelConfig(BaseModel):
    """Which provider and model a review run talks to."""
    model_config = ConfigDict(extra="forbid")

    provider: ProviderName = Field(default="openrouter", description="Provider identifier")
    model: str = Field(default="", description="Model id; empty means the provider default")
    api_key: Optional[str] = Field(default=None, description="API key (not needed for ollama)")
    base_url: Optional[str] = Field(default=None, description="Override for the provider API root")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description=(
            "Wall-clock timeout per provider attempt. Retries get a fresh timeout, so one "
            "call can take up to (max_retries + 1) * timeout_seconds plus backoff"
        ),
    )
    max_retries: int = Field(default=2, ge=0, description="Retries for retryable transport errors")

    @property
    def resolved_model(self) -> str:
        """Configured model, or the provider's default."""
        return self.model or DEFAULT_MODELS[self.provider]

    @classmethod
    def from_env(cls) -> "ModelConfig":
        """Build a config from environment variables (and a .env file, if any).

        Reads REVIEW_PROVIDER, REVIEW_MODEL, OPENROUTER_API_KEY / ANTHROPIC_API_KEY,
        OLLAMA_BASE_URL, LLM_TIMEOUT_SECONDS and LLM_MAX_RETRIES.
        """
        load_dotenv()
        provider = os.environ.get("REVIEW_PROVIDER", "openrouter").strip().lower()
        key_var = API_KEY_ENV_VARS.get(provider)
        base_url = os.environ.get("OLLAMA_BASE_URL") if provider == "ollama" else None

        return cls(
            provider=provider,
            model=os.environ.get("REVIEW_MODEL", ""),
            api_key=os.environ.get(key_var) if key_var else None,
            base_url=base_url,
            timeout_seconds=float(os.environ.get("LLM_TIMEOUT_SECONDS", 60)),
            max_retries=int(os.environ.get("LLM_MAX_RETRIES", 2)),
        )


class ReviewSettings(BaseModel):
    """Knobs for one review run."""
    model_config = ConfigDict(extra="forbid")

    max_document_chars: int = Field(
        default=15000,
        gt=0,
        description="Document text is truncated to this many characters in the prompt",
    )
    max_comments: int = Field(default=12, ge=0, description="Comments kept per persona")
    min_quote_chars: int = Field(default=3, ge=1, description="Shorter quotes are dropped")
    insert_summary_comment: bool = Field(
        default=False,
        description="Also insert each persona's global feedback at the document start",
    )
