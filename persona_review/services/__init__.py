"""Review pipeline services."""

from .document_surface import DocumentSurface, InsertedComment, TextDocumentSurface
from .errors import ParseError, PreconditionError, ReviewInProgressError, SurfaceError
from .feedback_normalizer import normalize_feedback
from .quote_anchoring import find_anchor, locate_quote, normalize_quote
from .response_parser import parse_response
from .review_orchestrator import ReviewObserver, ReviewOrchestrator, select_enabled

__all__ = [
    # Document surface
    "DocumentSurface",
    "TextDocumentSurface",
    "InsertedComment",
    # Errors
    "ParseError",
    "PreconditionError",
    "ReviewInProgressError",
    "SurfaceError",
    # Pipeline stages
    "parse_response",
    "normalize_feedback",
    "normalize_quote",
    "locate_quote",
    "find_anchor",
    # Orchestration
    "ReviewObserver",
    "ReviewOrchestrator",
    "select_enabled",
]
