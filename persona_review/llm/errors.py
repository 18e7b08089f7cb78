"""Provider transport errors.

Anything that goes wrong between sending a prompt and receiving the reply
text (network failure, HTTP error status, timeout) is an LLMError. The
review orchestrator records any LLMError as that persona's failure and moves
on to the next persona; only the client's retry loop looks at subclasses.
"""

from typing import Mapping


class LLMError(Exception):
    """Transport failure calling a language-model provider.

    ``retryable`` tells the client whether another attempt may succeed.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.request_id = request_id
        self.correlation_id = correlation_id

    def __str__(self) -> str:
        text = super().__str__()
        context = [
            f"{key}={value}"
            for key, value in (("provider", self.provider), ("request_id", self.request_id))
            if value
        ]
        return " ".join([text, *context])


class AuthenticationError(LLMError):
    """Missing, invalid or out-of-credit API key (401/402/403)."""


class RateLimitError(LLMError):
    """429 from the provider. ``retry_after`` is in seconds when known."""

    retryable = True

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        provider: str | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message, provider, request_id, correlation_id)
        self.retry_after = retry_after


class TimeoutError(LLMError):
    """The call outlived its wall-clock timeout (client- or server-side)."""

    retryable = True


class InvalidRequestError(LLMError):
    """400: the provider refused the request as malformed (e.g. prompt too long)."""


class ContentFilterError(LLMError):
    """The provider's moderation blocked the prompt or the reply."""


class ProviderError(LLMError):
    """5xx or connection failure; usually transient (local model still loading)."""

    retryable = True


class ModelNotFoundError(LLMError):
    """404: unknown model id, or a local model that was never pulled."""


def parse_retry_after(headers: Mapping[str, str] | None) -> float | None:
    """Seconds from a Retry-After header; None when absent or not a number."""
    if not headers:
        return None
    value = headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def error_for_status(
    status_code: int,
    message: str,
    provider: str,
    request_id: str | None = None,
    retry_after: float | None = None,
) -> LLMError:
    """Map an HTTP error status to the matching LLMError.

    Providers check their own moderation signals first; everything else
    goes through this table so every provider classifies statuses alike.
    """
    label = f"{provider} error ({status_code}): {message}"

    if status_code in (401, 402, 403):
        return AuthenticationError(label, provider=provider, request_id=request_id)
    if status_code == 404:
        return ModelNotFoundError(label, provider=provider, request_id=request_id)
    if status_code == 408:
        return TimeoutError(label, provider=provider, request_id=request_id)
    if status_code == 429:
        return RateLimitError(label, retry_after=retry_after, provider=provider, request_id=request_id)
    if status_code == 400:
        return InvalidRequestError(label, provider=provider, request_id=request_id)
    if status_code >= 500:
        return ProviderError(label, provider=provider, request_id=request_id)
    return LLMError(label, provider=provider, request_id=request_id)
