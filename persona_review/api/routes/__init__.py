"""API routes package."""

from . import health, personas, reviews

__all__ = ["health", "personas", "reviews"]
