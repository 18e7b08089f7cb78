"""Review run models.

Covers the normalized feedback record, anchored / unanchored comments,
per-persona run results and the session that keys them by persona id.

Pydantic v2. Extra fields are forbidden to prevent drift.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    """Status of one persona within a review session."""
    queued = "queued"      # Waiting for its turn
    running = "running"    # Provider call / parsing / anchoring in progress
    done = "done"          # Feedback available
    error = "error"        # Transport, parse or surface failure; retryable


class RunMode(str, Enum):
    """Which personas a run works through."""
    all = "all"
    retry_failed = "retryFailed"


# queued -> running -> done | error; terminal states only go back to queued on retry
ALLOWED_TRANSITIONS: Dict[RunStatus, set] = {
    RunStatus.queued: {RunStatus.running},
    RunStatus.running: {RunStatus.done, RunStatus.error},
    RunStatus.done: {RunStatus.queued},
    RunStatus.error: {RunStatus.queued},
}


class ReviewScores(BaseModel):
    """Scores on a 0-100 scale."""
    model_config = ConfigDict(extra="forbid")

    clarity: int = Field(default=0, ge=0, le=100)
    tone: int = Field(default=0, ge=0, le=100)
    alignment: int = Field(default=0, ge=0, le=100)


class ReviewComment(BaseModel):
    """A quoted span and the persona's remark about it."""
    model_config = ConfigDict(extra="forbid")

    quote: str
    comment: str


class NormalizedFeedback(BaseModel):
    """Validated persona output. Always fully populated."""
    model_config = ConfigDict(extra="forbid")

    scores: ReviewScores = Field(default_factory=ReviewScores)
    global_feedback: str = ""
    comments: List[ReviewComment] = Field(default_factory=list)


class TextLocation(BaseModel):
    """Character range in the document text where a quote was anchored.

    Only the quote matcher (via a document surface's search) produces these.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    start: int = Field(ge=0, description="Offset of the first matched character")
    end: int = Field(ge=0, description="Offset one past the last matched character")


class MatchedComment(ReviewComment):
    """Comment anchored to a document location."""

    location: TextLocation


class UnmatchedComment(ReviewComment):
    """Comment whose quote could not be found. Kept for display."""

    pass


class RunResult(BaseModel):
    """Outcome for one persona in a session."""
    model_config = ConfigDict(extra="forbid")

    persona_id: str
    persona_name: str
    status: RunStatus = RunStatus.queued
    feedback: Optional[NormalizedFeedback] = None
    matched: Optional[List[MatchedComment]] = None
    unmatched: Optional[List[UnmatchedComment]] = None
    error_message: Optional[str] = None
    raw_response: Optional[str] = Field(
        default=None,
        description="Model output kept for diagnostics when parsing failed",
    )
    updated_at: datetime = Field(default_factory=_utcnow)


class RunSession(BaseModel):
    """All persona results of one review, keyed by persona id.

    Re-running a persona replaces its result in place; a session never holds
    two results for the same persona.
    """
    model_config = ConfigDict(extra="forbid")

    session_id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=_utcnow)
    total_enabled: int = Field(default=0, ge=0)
    results: Dict[str, RunResult] = Field(default_factory=dict)

    @property
    def ordered_results(self) -> List[RunResult]:
        return list(self.results.values())

    @property
    def done_count(self) -> int:
        return sum(1 for r in self.results.values() if r.status == RunStatus.done)

    @property
    def progress(self) -> float:
        """Fraction of enabled personas that finished successfully."""
        if self.total_enabled == 0:
            return 0.0
        return min(1.0, self.done_count / self.total_enabled)

    def get(self, persona_id: str) -> Optional[RunResult]:
        return self.results.get(persona_id)

    def failed_or_missing(self, persona_ids: List[str]) -> List[str]:
        """Persona ids that have no result yet or ended in error."""
        return [
            pid for pid in persona_ids
            if pid not in self.results or self.results[pid].status == RunStatus.error
        ]

    def upsert(self, result: RunResult) -> RunResult:
        """Store a result, replacing any previous one for the same persona.

        Raises:
            ValueError: If the status change is not a legal transition.
        """
        previous = self.results.get(result.persona_id)
        if previous is not None and previous.status != result.status:
            if result.status not in ALLOWED_TRANSITIONS[previous.status]:
                raise ValueError(
                    f"Illegal status transition for {result.persona_id}: "
                    f"{previous.status.value} -> {result.status.value}"
                )
        result.updated_at = _utcnow()
        self.results[result.persona_id] = result
        return result
