"""LLM provider implementations.

This package contains provider-specific implementations of the LLMProvider interface.
"""

from .anthropic import AnthropicProvider
from .base import LLMProvider
from .ollama import OllamaProvider
from .openrouter import OpenRouterProvider

__all__ = [
    "LLMProvider",
    "OpenRouterProvider",
    "OllamaProvider",
    "AnthropicProvider",
]
