"""In-memory store of review sessions served over the HTTP API.

Each entry owns the document surface, the orchestrator (and so its run
lock and RunSession) and the personas it was started with, so that a later
"retry failed" call reuses the same session. Entries are lost on restart.

Features:
- TTL cleanup of idle reviews via periodic task
- Safe concurrent access via an asyncio lock
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from persona_review.llm.client import LLMClient
from persona_review.models.persona import Persona

from .document_surface import TextDocumentSurface
from .review_orchestrator import ReviewOrchestrator

logger = logging.getLogger(__name__)

# Idle reviews are dropped after an hour
DEFAULT_REVIEW_TTL_SECONDS = 3600

# How often to run cleanup (5 minutes)
CLEANUP_INTERVAL_SECONDS = 300


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReviewEntry:
    """Everything a review needs between requests."""

    review_id: str
    personas: List[Persona]
    surface: TextDocumentSurface
    orchestrator: ReviewOrchestrator
    client: LLMClient
    created_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)
    last_error: Optional[str] = None

    def touch(self) -> None:
        self.last_activity = _utcnow()


class ReviewSessionStore:
    """In-memory review store with TTL cleanup."""

    def __init__(self, ttl_seconds: int = DEFAULT_REVIEW_TTL_SECONDS):
        self._entries: dict[str, ReviewEntry] = {}
        self._lock = asyncio.Lock()
        self._ttl_seconds = ttl_seconds
        self._cleanup_task: Optional[asyncio.Task] = None

    async def start_cleanup_task(self) -> None:
        """Start the background cleanup task."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Review store cleanup task started")

    async def stop_cleanup_task(self) -> None:
        """Stop the background cleanup task."""
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            logger.info("Review store cleanup task stopped")

    async def _cleanup_loop(self) -> None:
        """Periodically clean up idle reviews."""
        while True:
            try:
                await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
                await self.cleanup_expired()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in review cleanup loop: {e}")

    async def cleanup_expired(self) -> int:
        """Drop reviews idle for longer than the TTL. Running reviews are kept.

        Returns:
            Number of reviews removed.
        """
        async with self._lock:
            now = _utcnow()
            expired = [
                entry for entry in self._entries.values()
                if not entry.orchestrator.is_running
                and (now - entry.last_activity).total_seconds() > self._ttl_seconds
            ]
            for entry in expired:
                del self._entries[entry.review_id]

        for entry in expired:
            await entry.client.aclose()

        if expired:
            logger.info(f"Cleaned up {len(expired)} idle reviews")
        return len(expired)

    async def create(
        self,
        document_text: str,
        personas: List[Persona],
        client: LLMClient,
        orchestrator_factory=ReviewOrchestrator,
        **orchestrator_kwargs,
    ) -> ReviewEntry:
        """Register a new review over ``document_text``."""
        surface = TextDocumentSurface(document_text)
        entry = ReviewEntry(
            review_id=str(uuid4()),
            personas=list(personas),
            surface=surface,
            orchestrator=orchestrator_factory(client, surface, **orchestrator_kwargs),
            client=client,
        )
        async with self._lock:
            self._entries[entry.review_id] = entry

        logger.debug(f"Created review {entry.review_id}")
        return entry

    async def get(self, review_id: str) -> Optional[ReviewEntry]:
        async with self._lock:
            return self._entries.get(review_id)

    async def delete(self, review_id: str) -> bool:
        async with self._lock:
            entry = self._entries.pop(review_id, None)
        if entry is None:
            return False
        await entry.client.aclose()
        logger.debug(f"Deleted review {review_id}")
        return True

    def __len__(self) -> int:
        return len(self._entries)


# Module-level singleton instance
_session_store: Optional[ReviewSessionStore] = None


def get_session_store() -> ReviewSessionStore:
    """Get the default review store singleton."""
    global _session_store
    if _session_store is None:
        _session_store = ReviewSessionStore()
    return _session_store


def set_session_store(store: Optional[ReviewSessionStore]) -> None:
    """Set the review store instance (for testing)."""
    global _session_store
    _session_store = store
