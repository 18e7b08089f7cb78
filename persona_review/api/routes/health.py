"""Health check endpoint."""

from fastapi import APIRouter

from persona_review import __version__
from persona_review.api.response import success_response
from persona_review.services.session_store import get_session_store

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_check() -> dict:
    """Return system health status and the number of live reviews."""
    return success_response({
        "status": "ok",
        "version": __version__,
        "active_reviews": len(get_session_store()),
    })
