"""Review orchestrator.

Runs enabled personas one at a time against the document:

    provider call -> response parser -> feedback normalizer
        -> quote anchoring per comment -> comment insertion (anchored only)

Per-persona failures (transport, parse, surface) are recorded on that
persona's result and never stop the batch. Only precondition failures
(no enabled personas, no document text) reach the caller, before any
persona runs.

Personas are never run concurrently: document surfaces batch their commands
and must not be entered from overlapping flows, and observers rely on a
total order of completion events.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional, Protocol

from persona_review.config import ReviewSettings
from persona_review.llm.errors import LLMError
from persona_review.models.persona import Persona
from persona_review.models.review import (
    MatchedComment,
    NormalizedFeedback,
    RunMode,
    RunResult,
    RunSession,
    RunStatus,
    TextLocation,
    UnmatchedComment,
)

from .document_surface import DocumentSurface
from .errors import ParseError, PreconditionError, ReviewInProgressError, SurfaceError
from .feedback_normalizer import normalize_feedback
from .prompts import build_review_prompt, build_system_prompt, format_attribution
from .quote_anchoring import find_anchor
from .response_parser import parse_response

logger = logging.getLogger(__name__)


class CompletionProvider(Protocol):
    """Anything that can answer a system + user prompt pair (e.g. LLMClient)."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


def select_enabled(personas: List[Persona]) -> List[Persona]:
    """Enabled personas, in order.

    Raises:
        PreconditionError: None are enabled, or two enabled personas share an id.
    """
    enabled = [p for p in personas if p.enabled]
    if not enabled:
        raise PreconditionError("No enabled personas")
    counts = Counter(p.id for p in enabled)
    duplicates = sorted(pid for pid, n in counts.items() if n > 1)
    if duplicates:
        raise PreconditionError(f"Duplicate persona ids: {', '.join(duplicates)}")
    return enabled


class ReviewObserver:
    """Receives run progress. Override the hooks you need."""

    def on_status(self, persona_id: str, status: RunStatus, note: Optional[str] = None) -> None:
        pass

    def on_progress(self, fraction: float) -> None:
        pass

    def on_finished(self, session: RunSession) -> None:
        pass


class ReviewOrchestrator:
    """Drives persona reviews against one document surface.

    Usage:
        orchestrator = ReviewOrchestrator(LLMClient(config), surface)
        session = await orchestrator.run(personas)
        session = await orchestrator.run(personas, mode=RunMode.retry_failed)
    """

    def __init__(
        self,
        provider: CompletionProvider,
        surface: DocumentSurface,
        observer: Optional[ReviewObserver] = None,
        settings: Optional[ReviewSettings] = None,
    ):
        self._provider = provider
        self._surface = surface
        self._observer = observer or ReviewObserver()
        self._settings = settings or ReviewSettings()
        self._session: Optional[RunSession] = None
        self._running = False
        # (location or None, message) pairs already on the surface this session
        self._inserted: set[tuple[Optional[TextLocation], str]] = set()

    @property
    def session(self) -> Optional[RunSession]:
        """Current session (None until the first run)."""
        return self._session

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(
        self,
        personas: List[Persona],
        mode: RunMode = RunMode.all,
        document_text: Optional[str] = None,
    ) -> RunSession:
        """Review the document with every enabled persona (or only the failed ones).

        Args:
            personas: Persona set; disabled personas are ignored.
            mode: ``RunMode.all`` starts a fresh session. ``RunMode.retry_failed``
                reuses the current one and re-runs personas whose result is
                missing or in error.
            document_text: Text to review. Read from the surface when omitted.

        Returns:
            The session, with one result per enabled persona that has run.

        Raises:
            ReviewInProgressError: Another run on this orchestrator is in flight.
            PreconditionError: No enabled personas, duplicate enabled persona ids,
                or the document text is empty.
        """
        if self._running:
            raise ReviewInProgressError()
        # Set before the first await so an overlapping call is rejected
        self._running = True
        try:
            enabled = select_enabled(personas)

            if document_text is None:
                document_text = await self._surface.get_full_text()
            if not document_text or not document_text.strip():
                raise PreconditionError("Document text is empty")

            session, working = self._prepare_session(enabled, mode)
            logger.info(
                f"Starting review session {session.session_id} ({mode.value}): "
                f"{len(working)} of {len(enabled)} persona(s) to run"
            )

            for persona in working:
                result = await self._review_persona(session, persona, document_text)
                self._observer.on_status(persona.id, result.status, result.error_message)
                self._observer.on_progress(session.progress)

            logger.info(
                f"Review session {session.session_id} finished: "
                f"{session.done_count}/{session.total_enabled} done"
            )
        finally:
            self._running = False

        self._observer.on_finished(session)
        return session

    async def retry_failed(
        self,
        personas: List[Persona],
        document_text: Optional[str] = None,
    ) -> RunSession:
        """Re-run only personas whose last result is missing or in error."""
        return await self.run(personas, mode=RunMode.retry_failed, document_text=document_text)

    def _prepare_session(
        self,
        enabled: List[Persona],
        mode: RunMode,
    ) -> tuple[RunSession, List[Persona]]:
        """Pick the session and the personas to run, and queue them."""
        if mode == RunMode.retry_failed and self._session is not None:
            session = self._session
            retry_ids = set(session.failed_or_missing([p.id for p in enabled]))
            working = [p for p in enabled if p.id in retry_ids]
        else:
            session = RunSession()
            working = list(enabled)
            self._inserted = set()

        session.total_enabled = len(enabled)
        self._session = session

        for persona in working:
            session.upsert(
                RunResult(
                    persona_id=persona.id,
                    persona_name=persona.name,
                    status=RunStatus.queued,
                )
            )
        return session, working

    async def _review_persona(
        self,
        session: RunSession,
        persona: Persona,
        document_text: str,
    ) -> RunResult:
        """Run one persona end to end and upsert its terminal result."""
        session.upsert(
            RunResult(persona_id=persona.id, persona_name=persona.name, status=RunStatus.running)
        )
        self._observer.on_status(persona.id, RunStatus.running)

        raw: Optional[str] = None
        try:
            raw = await self._provider.complete(
                build_system_prompt(persona),
                build_review_prompt(persona, document_text, self._settings.max_document_chars),
            )
            feedback = normalize_feedback(
                parse_response(raw),
                max_comments=self._settings.max_comments,
                min_quote_chars=self._settings.min_quote_chars,
            )
            matched, unmatched = await self._anchor_comments(persona, feedback)
        except LLMError as e:
            logger.warning(
                f"Provider call failed for persona {persona.id}: {e}",
                extra={"persona_id": persona.id, "error_type": type(e).__name__},
            )
            return self._fail(session, persona, str(e))
        except ParseError as e:
            logger.warning(
                f"Unparseable response for persona {persona.id}: {e}",
                extra={"persona_id": persona.id},
            )
            return self._fail(session, persona, str(e), raw_response=e.raw)
        except SurfaceError as e:
            logger.warning(
                f"Document surface failed for persona {persona.id}: {e}",
                extra={"persona_id": persona.id},
            )
            return self._fail(session, persona, f"Document surface error: {e}", raw_response=raw)
        except Exception as e:
            logger.exception(
                f"Unexpected failure reviewing persona {persona.id}",
                extra={"persona_id": persona.id},
            )
            return self._fail(session, persona, f"Unexpected error: {e}", raw_response=raw)

        result = session.upsert(
            RunResult(
                persona_id=persona.id,
                persona_name=persona.name,
                status=RunStatus.done,
                feedback=feedback,
                matched=matched,
                unmatched=unmatched,
            )
        )
        logger.info(
            f"Persona {persona.id} done: {len(matched)} anchored, {len(unmatched)} unanchored",
            extra={"persona_id": persona.id},
        )
        return result

    async def _anchor_comments(
        self,
        persona: Persona,
        feedback: NormalizedFeedback,
    ) -> tuple[List[MatchedComment], List[UnmatchedComment]]:
        """Split comments into anchored and unanchored, then insert the anchored ones.

        Every quote is anchored before anything is inserted. Insertions already
        made for this session (by an earlier attempt that failed part way) are
        not repeated.

        Raises:
            SurfaceError: If a search or insertion on the surface fails.
        """
        matched: List[MatchedComment] = []
        unmatched: List[UnmatchedComment] = []

        for item in feedback.comments:
            location = await find_anchor(self._surface, item.quote)
            if location is None:
                unmatched.append(UnmatchedComment(quote=item.quote, comment=item.comment))
            else:
                matched.append(
                    MatchedComment(quote=item.quote, comment=item.comment, location=location)
                )

        pending: List[tuple[Optional[TextLocation], str]] = [
            (item.location, format_attribution(persona, item.comment)) for item in matched
        ]
        if self._settings.insert_summary_comment and feedback.global_feedback:
            pending.append((None, format_attribution(persona, feedback.global_feedback)))

        for location, message in pending:
            if (location, message) in self._inserted:
                continue
            await self._surface.insert_comment(location, message)
            self._inserted.add((location, message))

        return matched, unmatched

    def _fail(
        self,
        session: RunSession,
        persona: Persona,
        message: str,
        raw_response: Optional[str] = None,
    ) -> RunResult:
        return session.upsert(
            RunResult(
                persona_id=persona.id,
                persona_name=persona.name,
                status=RunStatus.error,
                error_message=message,
                raw_response=raw_response,
            )
        )
