"""Document surface: the host the review reads from and comments into.

A surface exposes three async calls: read the full text, search it, and
attach a comment at a location. Word-like hosts implement these over their
own API; ``TextDocumentSurface`` does it in memory for plain text (API
sessions, the CLI, tests).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from persona_review.models.review import TextLocation

from .errors import SurfaceError

logger = logging.getLogger(__name__)


class DocumentSurface(ABC):
    """Abstract document host."""

    @abstractmethod
    async def get_full_text(self) -> str:
        """Return the entire document as plain text."""
        ...

    @abstractmethod
    async def search(self, needle: str) -> List[TextLocation]:
        """Find ``needle`` ignoring case, whitespace and punctuation.

        Returns matches in document order; an empty list means no match.
        """
        ...

    @abstractmethod
    async def insert_comment(self, location: Optional[TextLocation], message: str) -> None:
        """Attach a comment at ``location`` (document start when None)."""
        ...


class InsertedComment(BaseModel):
    """A comment recorded by TextDocumentSurface."""
    model_config = ConfigDict(extra="forbid")

    location: TextLocation
    message: str
    anchored_text: str = Field(description="Document text covered by the location")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def fold_for_search(text: str) -> tuple[str, list[int]]:
    """Fold text to lowercase alphanumeric words joined by single spaces.

    Returns the folded string and, for each folded character, the offset of
    the original character it came from. Separator spaces map to the
    original character that ended the preceding word.

    Example:
        "Hello,  World!" -> ("hello world", [0,1,2,3,4,5,8,9,10,11,12])
    """
    folded: list[str] = []
    offsets: list[int] = []
    pending_gap = -1

    for i, ch in enumerate(text):
        if ch.isalnum():
            if pending_gap >= 0 and folded:
                folded.append(" ")
                offsets.append(pending_gap)
            pending_gap = -1
            for low in ch.lower():
                folded.append(low)
                offsets.append(i)
        elif pending_gap < 0:
            pending_gap = i

    return "".join(folded), offsets


class TextDocumentSurface(DocumentSurface):
    """In-memory plain-text document.

    Search folds case, whitespace and punctuation on both sides, so
    "“Quick”  brown—fox" finds "quick brown fox". Inserted comments are
    kept in order on ``comments``.
    """

    def __init__(self, text: str):
        self._text = text
        self._folded, self._offsets = fold_for_search(text)
        self.comments: List[InsertedComment] = []

    @property
    def text(self) -> str:
        return self._text

    async def get_full_text(self) -> str:
        return self._text

    async def search(self, needle: str) -> List[TextLocation]:
        folded_needle, _ = fold_for_search(needle)
        if not folded_needle:
            return []

        results: List[TextLocation] = []
        start = self._folded.find(folded_needle)
        while start >= 0:
            last = start + len(folded_needle) - 1
            results.append(
                TextLocation(start=self._offsets[start], end=self._offsets[last] + 1)
            )
            start = self._folded.find(folded_needle, start + 1)
        return results

    async def insert_comment(self, location: Optional[TextLocation], message: str) -> None:
        if location is None:
            location = TextLocation(start=0, end=0)
        if location.end > len(self._text) or location.start > location.end:
            raise SurfaceError(f"Location {location.start}-{location.end} is outside the document")

        self.comments.append(
            InsertedComment(
                location=location,
                message=message,
                anchored_text=self._text[location.start:location.end],
            )
        )
        logger.debug(f"Inserted comment at {location.start}-{location.end}")
