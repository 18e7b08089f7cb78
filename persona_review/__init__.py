"""Persona review: multi-persona document critique with quote anchoring."""

__version__ = "1.0.0"
