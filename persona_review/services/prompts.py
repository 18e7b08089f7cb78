"""Prompt templates for persona reviews.

Each persona gets its own system prompt plus a user prompt that restates
the persona, carries its instructions, pins the JSON shape and embeds the
(truncated) document text.
"""

from __future__ import annotations

from persona_review.models.persona import Persona

DEFAULT_SYSTEM_PROMPT = "You are a precise reviewer."

# Bound on how much of the document goes into one prompt
DEFAULT_MAX_DOCUMENT_CHARS = 15000

RESPONSE_SHAPE = """Return a STRICT JSON object with the following shape (and nothing else):
{
  "scores": { "clarity": 0-100, "tone": 0-100, "alignment": 0-100 },
  "global_feedback": "short paragraph of overall feedback",
  "comments": [
     { "quote": "exact span from the doc", "comment": "your brief comment" }
  ]
}
Quotes must be copied verbatim from the document text."""


def build_system_prompt(persona: Persona) -> str:
    """System prompt for a persona, with a neutral fallback."""
    return persona.system_prompt.strip() or DEFAULT_SYSTEM_PROMPT


def build_review_prompt(
    persona: Persona,
    document_text: str,
    max_document_chars: int = DEFAULT_MAX_DOCUMENT_CHARS,
) -> str:
    """Build the user prompt for one persona review.

    Args:
        persona: Reviewer persona.
        document_text: Full document text.
        max_document_chars: The document is cut to this many characters.

    Returns:
        Formatted user prompt string.
    """
    lines = [
        "You are the following persona reviewing a document.",
        "",
        f"Persona Name: {persona.name}",
        f"System Persona: {persona.system_prompt}",
        "",
        "INSTRUCTIONS FOR PERSONA:",
        persona.instruction_prompt,
        "",
        RESPONSE_SHAPE,
        "",
        "Document text:",
        "--------------------",
        document_text[:max_document_chars],
    ]
    return "\n".join(lines)


def format_attribution(persona: Persona, comment: str) -> str:
    """Comment text as inserted into the document."""
    return f"{persona.name} (AI): {comment}"
