"""Review API endpoints.

- POST /reviews: Start a review of a plain-text document
- GET /reviews/{review_id}: Poll status, per-persona results and comments
- POST /reviews/{review_id}/retry: Re-run personas that failed
- DELETE /reviews/{review_id}: Drop a review
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks
from pydantic import BaseModel, ConfigDict, Field

from persona_review.api.exceptions import PersonaSetNotFoundError, ReviewNotFoundError
from persona_review.api.response import success_response
from persona_review.config import ModelConfig, ProviderName, ReviewSettings
from persona_review.llm.client import LLMClient
from persona_review.models.persona import Persona, get_default_persona_set
from persona_review.models.review import RunMode, RunResult, RunStatus
from persona_review.services.document_surface import InsertedComment
from persona_review.services.errors import PreconditionError, ReviewInProgressError
from persona_review.services.session_store import ReviewEntry, get_session_store
from persona_review.services.review_orchestrator import select_enabled

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])

DEFAULT_PERSONA_SET_ID = "cross-functional"


class StartReviewRequest(BaseModel):
    """Request to start a review."""
    model_config = ConfigDict(extra="forbid")

    document_text: str = Field(description="Plain text of the document to review")
    persona_set_id: str = Field(default=DEFAULT_PERSONA_SET_ID)
    personas: Optional[List[Persona]] = Field(
        default=None,
        description="Custom personas; overrides persona_set_id when given",
    )
    provider: Optional[ProviderName] = None
    model: Optional[str] = None
    settings: Optional[ReviewSettings] = None


class ReviewStartData(BaseModel):
    """Response data after a review (or retry) was scheduled."""
    review_id: str
    status: str
    persona_ids: List[str]


class ReviewStatusData(BaseModel):
    """Snapshot of a review."""
    review_id: str
    running: bool
    progress: float
    results: List[RunResult]
    comments: List[InsertedComment]
    error: Optional[str] = None


def _model_config(request: StartReviewRequest) -> ModelConfig:
    """Environment config with the request's provider / model applied.

    Switching provider clears the key and base URL so the provider falls back
    to its own environment variables.
    """
    config = ModelConfig.from_env()
    update: dict = {}
    if request.provider and request.provider != config.provider:
        update.update(provider=request.provider, api_key=None, base_url=None, model="")
    if request.model:
        update["model"] = request.model
    return config.model_copy(update=update) if update else config


def _resolve_personas(request: StartReviewRequest) -> List[Persona]:
    if request.personas is not None:
        return request.personas
    persona_set = get_default_persona_set(request.persona_set_id)
    if persona_set is None:
        raise PersonaSetNotFoundError(request.persona_set_id)
    return list(persona_set.personas)


async def _get_entry(review_id: str) -> ReviewEntry:
    entry = await get_session_store().get(review_id)
    if entry is None:
        raise ReviewNotFoundError(review_id)
    return entry


async def run_review(entry: ReviewEntry, mode: RunMode) -> None:
    """Background task to run (or retry) a review.

    Args:
        entry: The stored review to run
        mode: ``RunMode.all`` or ``RunMode.retry_failed``
    """
    try:
        logger.info("Running review %s (%s)", entry.review_id, mode.value)
        session = await entry.orchestrator.run(entry.personas, mode=mode)
        entry.last_error = None
        logger.info(
            "Review %s finished: %d/%d done",
            entry.review_id,
            session.done_count,
            session.total_enabled,
        )

    except ReviewInProgressError:
        logger.warning("Review %s already running; skipped %s run", entry.review_id, mode.value)

    except PreconditionError as e:
        logger.error("Review %s cannot run: %s", entry.review_id, e.message)
        entry.last_error = e.message

    except Exception as e:
        logger.exception("Review %s failed", entry.review_id)
        entry.last_error = str(e)

    finally:
        entry.touch()


@router.post("")
async def start_review(
    request: StartReviewRequest,
    background_tasks: BackgroundTasks,
) -> dict:
    """Start a review job.

    Preconditions are checked up front so the caller gets a 400 instead of
    a review that fails in the background. Returns review_id for polling.
    """
    personas = _resolve_personas(request)
    enabled = select_enabled(personas)
    if not request.document_text.strip():
        raise PreconditionError("Document text is empty")

    client = LLMClient(config=_model_config(request))
    entry = await get_session_store().create(
        request.document_text,
        personas,
        client,
        settings=request.settings,
    )

    background_tasks.add_task(run_review, entry, RunMode.all)

    return success_response(ReviewStartData(
        review_id=entry.review_id,
        status=RunStatus.queued.value,
        persona_ids=[p.id for p in enabled],
    ))


@router.get("/{review_id}")
async def get_review(review_id: str) -> dict:
    """Get review status, per-persona results and the comments inserted so far."""
    entry = await _get_entry(review_id)
    entry.touch()
    session = entry.orchestrator.session

    return success_response(ReviewStatusData(
        review_id=entry.review_id,
        running=entry.orchestrator.is_running,
        progress=session.progress if session else 0.0,
        results=session.ordered_results if session else [],
        comments=entry.surface.comments,
        error=entry.last_error,
    ))


@router.post("/{review_id}/retry")
async def retry_review(review_id: str, background_tasks: BackgroundTasks) -> dict:
    """Re-run personas whose result is missing or in error.

    Returns 409 while the review is still running.
    """
    entry = await _get_entry(review_id)
    if entry.orchestrator.is_running:
        raise ReviewInProgressError()

    enabled_ids = [p.id for p in entry.personas if p.enabled]
    session = entry.orchestrator.session
    retry_ids = session.failed_or_missing(enabled_ids) if session else enabled_ids

    background_tasks.add_task(run_review, entry, RunMode.retry_failed)

    return success_response(ReviewStartData(
        review_id=entry.review_id,
        status=RunStatus.queued.value,
        persona_ids=retry_ids,
    ))


@router.delete("/{review_id}")
async def delete_review(review_id: str) -> dict:
    """Drop a review and close its provider client."""
    entry = await _get_entry(review_id)
    if entry.orchestrator.is_running:
        raise ReviewInProgressError()
    await get_session_store().delete(review_id)
    return success_response({"review_id": review_id, "deleted": True})
