"""Recover a JSON value from free-text model output.

Models wrap their JSON in markdown fences, prose or both, and sometimes emit
smart quotes or trailing commas. Candidates are tried in a fixed order:

1. the whole (trimmed) response
2. the first ```json fenced block
3. the first fenced block of any kind
4. the greedy span from the first "{" to the last "}"

Each candidate gets one repaired retry (straight quotes, no trailing commas)
before moving on. The first candidate that parses wins.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator

from .errors import ParseError

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```[ \t]*json[ \t]*\r?\n?(?P<body>.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE_RE = re.compile(r"```[^\n`]*\r?\n?(?P<body>.*?)```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

_SMART_QUOTES = {
    "\u201c": '"',
    "\u201d": '"',
    "\u201e": '"',
    "\u2018": "'",
    "\u2019": "'",
}


def repair_json(text: str) -> str:
    """Apply light syntax repair: straight quotes, no trailing commas."""
    for smart, straight in _SMART_QUOTES.items():
        text = text.replace(smart, straight)
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _candidates(raw: str) -> Iterator[tuple[str, str]]:
    """Yield (stage, text) pairs in cascade order."""
    trimmed = raw.strip()
    yield "direct", trimmed

    match = _JSON_FENCE_RE.search(trimmed)
    if match:
        yield "json_fence", match.group("body").strip()

    match = _ANY_FENCE_RE.search(trimmed)
    if match:
        yield "any_fence", match.group("body").strip()

    match = _OBJECT_RE.search(trimmed)
    if match:
        yield "object_span", match.group(0)


def _loads_with_repair(text: str) -> Any:
    """json.loads, retried once on the repaired text.

    Raises:
        ValueError: If neither the text nor its repair parse.
    """
    try:
        return json.loads(text)
    except ValueError:
        repaired = repair_json(text)
        if repaired == text:
            raise
        return json.loads(repaired)


def parse_response(raw: str | None) -> Any:
    """Turn a raw model response into a candidate JSON value.

    Args:
        raw: Text returned by the provider.

    Returns:
        The decoded JSON value (usually a dict; validated later).

    Raises:
        ParseError: If no cascade stage yields valid JSON. ``raw`` is kept on
            the exception.
    """
    if raw is None or not raw.strip():
        raise ParseError("Model response was empty", raw=raw)

    tried: set[str] = set()
    for stage, text in _candidates(raw):
        if not text or text in tried:
            continue
        tried.add(text)
        try:
            value = _loads_with_repair(text)
        except ValueError:
            continue
        logger.debug(f"Parsed model response at stage '{stage}'")
        return value

    raise ParseError(
        f"Model response is not valid JSON ({len(raw)} chars)",
        raw=raw,
    )
