"""FastAPI application setup."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from persona_review import __version__
from persona_review.api.exceptions import PersonaSetNotFoundError, ReviewNotFoundError
from persona_review.api.response import ErrorCode, error_json
from persona_review.api.routes import health, personas, reviews
from persona_review.llm import LLMError
from persona_review.services.errors import PreconditionError, ReviewInProgressError
from persona_review.services.session_store import get_session_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    store = get_session_store()
    await store.start_cleanup_task()
    yield
    await store.stop_cleanup_task()


app = FastAPI(
    title="Persona Review API",
    description="Multi-persona document review with comments anchored to quoted text",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for the add-in dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "https://localhost:3000",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(ReviewNotFoundError)
async def review_not_found_handler(request: Request, exc: ReviewNotFoundError) -> JSONResponse:
    """Handle unknown or expired review ids."""
    return error_json(404, ErrorCode.REVIEW_NOT_FOUND, str(exc))


@app.exception_handler(PersonaSetNotFoundError)
async def persona_set_not_found_handler(request: Request, exc: PersonaSetNotFoundError) -> JSONResponse:
    """Handle unknown persona set ids."""
    return error_json(404, ErrorCode.PERSONA_SET_NOT_FOUND, str(exc))


@app.exception_handler(PreconditionError)
async def precondition_error_handler(request: Request, exc: PreconditionError) -> JSONResponse:
    """Handle runs requested without enabled personas or document text."""
    return error_json(400, ErrorCode.PRECONDITION_FAILED, exc.message)


@app.exception_handler(ReviewInProgressError)
async def review_in_progress_handler(request: Request, exc: ReviewInProgressError) -> JSONResponse:
    """Handle a run requested while another is in flight."""
    return error_json(409, ErrorCode.REVIEW_IN_PROGRESS, exc.message)


@app.exception_handler(LLMError)
async def llm_error_handler(request: Request, exc: LLMError) -> JSONResponse:
    """Handle LLM provider errors that escape a review."""
    logger.error(f"LLM error reached the API: {exc}")
    return error_json(503, ErrorCode.AI_SERVICE_ERROR, "AI service is temporarily unavailable. Please try again.")


# Register routes
app.include_router(health.router)
app.include_router(personas.router, prefix="/api")
app.include_router(reviews.router, prefix="/api")
