"""Tests for persona review prompt building."""

from persona_review.models.persona import Persona
from persona_review.services.prompts import (
    DEFAULT_SYSTEM_PROMPT,
    build_review_prompt,
    build_system_prompt,
    format_attribution,
)


def legal() -> Persona:
    return Persona(
        id="legal",
        name="Legal",
        system_prompt="You are a corporate counsel.",
        instruction_prompt="Flag ambiguous commitments.",
    )


class TestSystemPrompt:
    def test_uses_persona_system_prompt(self):
        assert build_system_prompt(legal()) == "You are a corporate counsel."

    def test_falls_back_when_blank(self):
        persona = Persona(id="p", name="P", system_prompt="   ")
        assert build_system_prompt(persona) == DEFAULT_SYSTEM_PROMPT


class TestReviewPrompt:
    def test_contains_persona_and_shape(self):
        prompt = build_review_prompt(legal(), "Document body.")

        assert "Persona Name: Legal" in prompt
        assert "Flag ambiguous commitments." in prompt
        assert '"global_feedback"' in prompt
        assert "Quotes must be copied verbatim" in prompt
        assert prompt.endswith("Document body.")

    def test_truncates_document(self):
        prompt = build_review_prompt(legal(), "abcdefghij", max_document_chars=4)
        assert prompt.endswith("\nabcd")


def test_format_attribution():
    assert format_attribution(legal(), "Too vague.") == "Legal (AI): Too vague."
