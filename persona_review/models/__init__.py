"""Persona and review run models."""

from .persona import (
    DEFAULT_PERSONA_SETS,
    Persona,
    PersonaSet,
    get_default_persona_set,
    load_persona_sets,
)
from .review import (
    MatchedComment,
    NormalizedFeedback,
    ReviewComment,
    ReviewScores,
    RunMode,
    RunResult,
    RunSession,
    RunStatus,
    TextLocation,
    UnmatchedComment,
)

__all__ = [
    # Personas
    "Persona",
    "PersonaSet",
    "DEFAULT_PERSONA_SETS",
    "get_default_persona_set",
    "load_persona_sets",
    # Review runs
    "RunStatus",
    "RunMode",
    "ReviewScores",
    "ReviewComment",
    "NormalizedFeedback",
    "TextLocation",
    "MatchedComment",
    "UnmatchedComment",
    "RunResult",
    "RunSession",
]
