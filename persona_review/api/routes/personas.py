"""Persona set endpoints.

- GET /personas/sets: List the built-in persona sets
- GET /personas/sets/{set_id}: One persona set with its personas
"""

from fastapi import APIRouter

from persona_review.api.exceptions import PersonaSetNotFoundError
from persona_review.api.response import success_response
from persona_review.models.persona import DEFAULT_PERSONA_SETS, get_default_persona_set

router = APIRouter(prefix="/personas", tags=["Personas"])


@router.get("/sets")
async def list_persona_sets() -> dict:
    """List built-in persona sets (id, name, persona count)."""
    return success_response([
        {
            "id": persona_set.id,
            "name": persona_set.name,
            "persona_count": len(persona_set.personas),
        }
        for persona_set in DEFAULT_PERSONA_SETS
    ])


@router.get("/sets/{set_id}")
async def get_persona_set(set_id: str) -> dict:
    """Return a built-in persona set."""
    persona_set = get_default_persona_set(set_id)
    if persona_set is None:
        raise PersonaSetNotFoundError(set_id)
    return success_response(persona_set)
