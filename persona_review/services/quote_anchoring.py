"""Quote anchoring.

Finds where a model-supplied quotation sits in the document, using the
document surface's forgiving search. Models rarely quote verbatim, so the
search falls back from the full quote to progressively shorter word seeds:

1. the normalized quote
2. the quote without enclosing quotation marks
3. seeds of 8, 6 and 5 words taken from the start, middle and end

The first search that returns anything wins. Reported span offsets from
the model are never trusted; every quote is re-located.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from persona_review.models.review import TextLocation

from .document_surface import DocumentSurface

logger = logging.getLogger(__name__)

# Quotes longer than this are cut down to a centered slice
LONG_QUOTE_CHARS = 260
CENTER_SLICE_CHARS = 180

SEED_WINDOWS = (8, 6, 5)
SEED_POSITIONS = ("first", "middle", "last")

_QUOTE_MARKS = "\"'"
_WHITESPACE_RE = re.compile(r"[\s\u00a0\u2007\u202f]+")

_CHAR_MAP = str.maketrans({
    "\u201c": '"',
    "\u201d": '"',
    "\u201e": '"',
    "\u201f": '"',
    "\u2018": "'",
    "\u2019": "'",
    "\u201a": "'",
    "\u201b": "'",
    "\u2013": "-",
    "\u2014": "-",
})


@dataclass(frozen=True)
class AnchorMatch:
    """Where a quote was found and which search found it."""

    location: TextLocation
    stage: str
    needle: str


def normalize_quote(quote: str) -> str:
    """Straighten quotes and dashes, collapse whitespace, and shorten long quotes.

    Args:
        quote: Quote as written by the model.

    Returns:
        Normalized quote; at most CENTER_SLICE_CHARS long when the input
        exceeded LONG_QUOTE_CHARS.
    """
    text = quote.translate(_CHAR_MAP)
    text = _WHITESPACE_RE.sub(" ", text).strip()

    if len(text) > LONG_QUOTE_CHARS:
        start = (len(text) - CENTER_SLICE_CHARS) // 2
        text = text[start:start + CENTER_SLICE_CHARS].strip()

    return text


def strip_enclosing_quotes(quote: str) -> Optional[str]:
    """Drop quotation marks wrapping the quote, or None if there are none."""
    if not quote or (quote[0] not in _QUOTE_MARKS and quote[-1] not in _QUOTE_MARKS):
        return None
    stripped = quote.strip(_QUOTE_MARKS).strip()
    return stripped or None


def word_seeds(text: str) -> list[tuple[str, str]]:
    """Word-window seeds in search order: larger windows first, then first/middle/last.

    Windows larger than the quote's word count are skipped.
    """
    words = text.split(" ")
    seeds: list[tuple[str, str]] = []
    for size in SEED_WINDOWS:
        if len(words) < size:
            continue
        starts = {
            "first": 0,
            "middle": (len(words) - size) // 2,
            "last": len(words) - size,
        }
        for position in SEED_POSITIONS:
            start = starts[position]
            seeds.append((f"seed_{position}_{size}", " ".join(words[start:start + size])))
    return seeds


def build_search_cascade(quote: str) -> list[tuple[str, str]]:
    """Ordered (stage, needle) pairs to try for a quote, without repeats."""
    normalized = normalize_quote(quote)
    if not normalized:
        return []

    cascade = [("exact", normalized)]
    unquoted = strip_enclosing_quotes(normalized)
    if unquoted:
        cascade.append(("unquoted", unquoted))
    cascade.extend(word_seeds(unquoted or normalized))

    seen: set[str] = set()
    ordered = []
    for stage, needle in cascade:
        if needle in seen:
            continue
        seen.add(needle)
        ordered.append((stage, needle))
    return ordered


async def locate_quote(surface: DocumentSurface, quote: str) -> Optional[AnchorMatch]:
    """Run the search cascade and report the first hit.

    Returns:
        AnchorMatch for the first successful search, or None when every
        search came back empty.
    """
    cascade = build_search_cascade(quote)
    for stage, needle in cascade:
        results = await surface.search(needle)
        logger.debug(f"Anchor stage '{stage}' for {needle[:40]!r}: {len(results)} hit(s)")
        if results:
            return AnchorMatch(location=results[0], stage=stage, needle=needle)

    logger.debug(f"No anchor after {len(cascade)} searches for {quote[:40]!r}")
    return None


async def find_anchor(surface: DocumentSurface, quote: str) -> Optional[TextLocation]:
    """Location of the first match for ``quote``, or None if it cannot be anchored."""
    match = await locate_quote(surface, quote)
    return match.location if match else None
