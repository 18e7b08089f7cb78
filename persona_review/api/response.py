"""Envelope helpers. Every endpoint answers ``{"data": ..., "error": ...}``
with exactly one of the two set, so the add-in can branch on ``error``.
"""

from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Machine-readable codes placed in ``error.code``."""

    REVIEW_NOT_FOUND = "REVIEW_NOT_FOUND"
    PERSONA_SET_NOT_FOUND = "PERSONA_SET_NOT_FOUND"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    REVIEW_IN_PROGRESS = "REVIEW_IN_PROGRESS"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"


class ErrorDetail(BaseModel):
    code: ErrorCode
    message: str


def success_response(data: Any) -> dict[str, Any]:
    """Wrap ``data``; pydantic models are dumped in JSON mode first."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return {"data": data, "error": None}


def error_response(code: ErrorCode, message: str) -> dict[str, Any]:
    return {"data": None, "error": ErrorDetail(code=code, message=message).model_dump(mode="json")}


def error_json(status_code: int, code: ErrorCode, message: str) -> JSONResponse:
    """Error envelope as a ready JSONResponse, for exception handlers."""
    return JSONResponse(status_code=status_code, content=error_response(code, message))
