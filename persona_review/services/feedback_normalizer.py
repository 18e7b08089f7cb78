"""Coerce an untyped model JSON value into NormalizedFeedback.

This is the only place the duck-typed model output is inspected. Anything
missing or malformed falls back to a default (score 0, empty string, no
comments) so normalization never fails.
"""

from __future__ import annotations

import math
from typing import Any

from persona_review.models.review import NormalizedFeedback, ReviewComment, ReviewScores

SCORE_DIMENSIONS = ("clarity", "tone", "alignment")
DEFAULT_MAX_COMMENTS = 12
DEFAULT_MIN_QUOTE_CHARS = 3


def _to_number(value: Any) -> float:
    """Best-effort float; booleans, NaN, infinities and junk become 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def detect_scale(values: list[float]) -> float:
    """Top of the scale the model used: 1 (fractions), 10 or 100."""
    top = max(values) if values else 0.0
    if top <= 1:
        return 1.0
    if top <= 10:
        return 10.0
    return 100.0


def scale_scores(raw_scores: Any) -> ReviewScores:
    """Rescale clarity/tone/alignment onto 0-100 integers.

    The three values share one detected scale, so {0.8, 0.6, 0.9},
    {8, 6, 9} and {80, 60, 90} all come out as {80, 60, 90}.
    """
    source = raw_scores if isinstance(raw_scores, dict) else {}
    values = [_to_number(source.get(dim)) for dim in SCORE_DIMENSIONS]
    factor = 100.0 / detect_scale(values)

    scaled = {}
    for dim, value in zip(SCORE_DIMENSIONS, values):
        # Half-up rounding, not banker's rounding
        rounded = math.floor(value * factor + 0.5)
        scaled[dim] = max(0, min(100, rounded))
    return ReviewScores(**scaled)


def sanitize_comments(
    raw_comments: Any,
    max_comments: int = DEFAULT_MAX_COMMENTS,
    min_quote_chars: int = DEFAULT_MIN_QUOTE_CHARS,
) -> list[ReviewComment]:
    """Keep at most ``max_comments`` entries whose trimmed quote is long enough."""
    if not isinstance(raw_comments, list):
        return []

    comments: list[ReviewComment] = []
    for entry in raw_comments:
        if len(comments) >= max_comments:
            break
        if not isinstance(entry, dict):
            continue
        quote = _to_text(entry.get("quote")).strip()
        if len(quote) < min_quote_chars:
            continue
        comments.append(ReviewComment(quote=quote, comment=_to_text(entry.get("comment")).strip()))
    return comments


def normalize_feedback(
    candidate: Any,
    max_comments: int = DEFAULT_MAX_COMMENTS,
    min_quote_chars: int = DEFAULT_MIN_QUOTE_CHARS,
) -> NormalizedFeedback:
    """Validate and clamp a parsed model response.

    Args:
        candidate: Any JSON value returned by the response parser.
        max_comments: Cap on kept comments.
        min_quote_chars: Comments with shorter trimmed quotes are dropped.

    Returns:
        A fully populated NormalizedFeedback.
    """
    data = candidate if isinstance(candidate, dict) else {}

    global_feedback = data.get("global_feedback")
    if global_feedback is None:
        global_feedback = data.get("globalFeedback")

    return NormalizedFeedback(
        scores=scale_scores(data.get("scores")),
        global_feedback=_to_text(global_feedback).strip(),
        comments=sanitize_comments(data.get("comments"), max_comments, min_quote_chars),
    )
