"""High-level LLM client with retry and timeout handling.

The review orchestrator only needs ``complete(system_prompt, user_prompt)``;
everything provider-specific stays behind this client.
"""

import asyncio
import logging
import random
import uuid

from persona_review.config import ModelConfig

from .errors import LLMError, RateLimitError
from .errors import TimeoutError as RequestTimeoutError
from .models import LLMRequest, LLMResponse
from .providers.anthropic import AnthropicProvider
from .providers.base import LLMProvider
from .providers.ollama import OllamaProvider
from .providers.openrouter import OpenRouterProvider

logger = logging.getLogger(__name__)


def create_provider(config: ModelConfig) -> LLMProvider:
    """Instantiate the provider named in the config.

    Raises:
        ValueError: If the provider name is not recognized.
    """
    model = config.resolved_model
    if config.provider == "openrouter":
        return OpenRouterProvider(
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            default_model=model,
            base_url=config.base_url,
        )
    if config.provider == "ollama":
        return OllamaProvider(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            default_model=model,
        )
    if config.provider == "anthropic":
        return AnthropicProvider(
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            default_model=model,
        )
    raise ValueError(f"Unknown provider: {config.provider}")


class LLMClient:
    """High-level LLM client with retry.

    Features:
    - Automatic retry with exponential backoff + jitter
    - Wall-clock timeout per attempt (caller-supplied via ModelConfig)
    - Correlation ID tracking across attempts
    """

    DEFAULT_BASE_DELAY = 1.0  # Base delay for exponential backoff
    DEFAULT_MAX_DELAY = 30.0  # Maximum delay between retries

    def __init__(
        self,
        config: ModelConfig | None = None,
        provider: LLMProvider | None = None,
    ):
        """Initialize LLM client.

        Args:
            config: Model configuration. Defaults to ModelConfig.from_env().
            provider: Pre-built provider; overrides the one named in config.
        """
        self._config = config or ModelConfig.from_env()
        self._provider = provider or create_provider(self._config)
        self._timeout = self._config.timeout_seconds
        self._max_retries = self._config.max_retries

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    @property
    def config(self) -> ModelConfig:
        return self._config

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Run a single system + user exchange and return the reply text.

        Raises:
            LLMError: Transport failure, HTTP error or timeout after retries.
        """
        request = LLMRequest.exchange(
            system_prompt,
            user_prompt,
            model=self._config.resolved_model,
            temperature=self._config.temperature,
            json_mode=self._provider.supports("json_object"),
        )
        response = await self.generate(request)
        return response.text or ""

    async def generate(
        self,
        request: LLMRequest,
        correlation_id: str | None = None,
    ) -> LLMResponse:
        """Generate a completion with automatic retry.

        The timeout applies to each attempt, not to the call as a whole: with
        retries the call may run for (max_retries + 1) * timeout plus backoff.

        Raises:
            LLMError: If the provider fails after retries.
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        provider_name = self._provider.name
        last_error: LLMError | None = None

        for attempt in range(self._max_retries + 1):
            try:
                logger.debug(
                    "Attempting request to %s (attempt %d/%d)",
                    provider_name,
                    attempt + 1,
                    self._max_retries + 1,
                    extra={
                        "correlation_id": correlation_id,
                        "provider": provider_name,
                        "attempt": attempt + 1,
                    },
                )

                response = await self._generate_once(request)

                logger.info(
                    "LLM request succeeded",
                    extra={
                        "correlation_id": correlation_id,
                        "provider": response.provider,
                        "model": response.model,
                        "latency_ms": response.latency_ms,
                        "prompt_tokens": response.usage.prompt_tokens,
                        "completion_tokens": response.usage.completion_tokens,
                        "finish_reason": response.finish_reason,
                    },
                )
                return response

            except LLMError as e:
                e.correlation_id = correlation_id
                if not e.retryable:
                    logger.error(
                        "Provider %s failed with non-retryable error: %s",
                        provider_name,
                        str(e),
                        extra={
                            "correlation_id": correlation_id,
                            "provider": provider_name,
                            "error_type": type(e).__name__,
                        },
                    )
                    raise

                last_error = e

                logger.warning(
                    "Retryable error on attempt %d/%d: %s",
                    attempt + 1,
                    self._max_retries + 1,
                    str(e),
                    extra={
                        "correlation_id": correlation_id,
                        "provider": provider_name,
                        "attempt": attempt + 1,
                        "error_type": type(e).__name__,
                    },
                )

                if attempt < self._max_retries:
                    delay = self._calculate_backoff(attempt, e)
                    logger.debug(
                        "Waiting %.2f seconds before retry",
                        delay,
                        extra={"correlation_id": correlation_id},
                    )
                    await asyncio.sleep(delay)

        if last_error:
            raise last_error

        raise LLMError(
            f"Provider {provider_name} failed after {self._max_retries + 1} attempts",
            provider=provider_name,
            correlation_id=correlation_id,
        )

    async def _generate_once(self, request: LLMRequest) -> LLMResponse:
        """One provider call bounded by the configured wall-clock timeout."""
        try:
            return await asyncio.wait_for(self._provider.generate(request), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                f"{self._provider.name} call exceeded {self._timeout}s",
                provider=self._provider.name,
            ) from e

    def _calculate_backoff(self, attempt: int, error: Exception) -> float:
        """Calculate backoff delay with exponential growth and jitter.

        Args:
            attempt: Current attempt number (0-indexed).
            error: The error that triggered the retry.

        Returns:
            Delay in seconds.
        """
        if isinstance(error, RateLimitError) and error.retry_after:
            return min(error.retry_after, self.DEFAULT_MAX_DELAY)

        base_delay = self.DEFAULT_BASE_DELAY * (2 ** attempt)

        # Add jitter (±25%)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)

        return min(base_delay + jitter, self.DEFAULT_MAX_DELAY)

    async def aclose(self) -> None:
        await self._provider.aclose()
