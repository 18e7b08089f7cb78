"""Tests for persona models and the built-in persona sets."""

import json

import pytest
from pydantic import ValidationError

from persona_review.models.persona import (
    DEFAULT_PERSONA_SETS,
    Persona,
    PersonaSet,
    get_default_persona_set,
    load_persona_sets,
)


class TestPersona:
    def test_camel_case_aliases(self):
        persona = Persona.model_validate({
            "id": "cto",
            "name": "CTO",
            "systemPrompt": "You are a CTO.",
            "instructionPrompt": "Check feasibility.",
            "displayColor": "#0ea5e9",
        })
        assert persona.system_prompt == "You are a CTO."
        assert persona.instruction_prompt == "Check feasibility."
        assert persona.display_color == "#0ea5e9"
        assert persona.enabled is True

    def test_short_legacy_keys(self):
        persona = Persona.model_validate({
            "id": "hr",
            "name": "HR",
            "system": "You are HR.",
            "instruction": "Check tone.",
            "color": "#16a34a",
            "enabled": False,
        })
        assert persona.system_prompt == "You are HR."
        assert persona.enabled is False

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            Persona.model_validate({"id": "x", "name": "X", "mood": "grumpy"})

    def test_rejects_bad_colour(self):
        with pytest.raises(ValidationError):
            Persona(id="x", name="X", display_color="blue")

    def test_frozen(self):
        persona = Persona(id="x", name="X")
        with pytest.raises(ValidationError):
            persona.enabled = False


class TestDefaultSets:
    def test_ids(self):
        assert [s.id for s in DEFAULT_PERSONA_SETS] == [
            "cross-functional",
            "marketing-focus",
            "startup-stakeholders",
        ]

    def test_persona_ids_unique_within_each_set(self):
        for persona_set in DEFAULT_PERSONA_SETS:
            ids = [p.id for p in persona_set.personas]
            assert len(ids) == len(set(ids))
            assert all(p.system_prompt and p.instruction_prompt for p in persona_set.personas)

    def test_lookup(self):
        assert get_default_persona_set("marketing-focus").name
        assert get_default_persona_set("nope") is None

    def test_enabled_personas(self):
        persona_set = PersonaSet(
            id="s",
            name="S",
            personas=[Persona(id="a", name="A"), Persona(id="b", name="B", enabled=False)],
        )
        assert [p.id for p in persona_set.enabled_personas()] == ["a"]


class TestLoadPersonaSets:
    def test_list_file(self, tmp_path):
        path = tmp_path / "sets.json"
        path.write_text(json.dumps([
            {"id": "mine", "name": "Mine", "personas": [{"id": "a", "name": "A", "system": "S"}]},
        ]))

        sets = load_persona_sets(path)

        assert sets[0].personas[0].system_prompt == "S"

    def test_mapping_file(self, tmp_path):
        path = tmp_path / "sets.json"
        path.write_text(json.dumps({
            "mine": {"id": "mine", "name": "Mine", "personas": []},
            "yours": {"id": "yours", "name": "Yours", "personas": []},
        }))

        assert [s.id for s in load_persona_sets(path)] == ["mine", "yours"]

    def test_malformed_persona(self, tmp_path):
        path = tmp_path / "sets.json"
        path.write_text(json.dumps([{"id": "mine", "name": "Mine", "personas": [{"id": ""}]}]))

        with pytest.raises(ValidationError):
            load_persona_sets(path)

    def test_duplicate_persona_ids(self, tmp_path):
        path = tmp_path / "sets.json"
        persona = {"id": "legal", "name": "Legal"}
        path.write_text(json.dumps([{"id": "mine", "name": "Mine", "personas": [persona, persona]}]))

        with pytest.raises(ValidationError, match="Duplicate persona id 'legal'"):
            load_persona_sets(path)


class TestPersonaSet:
    def test_duplicate_ids_rejected(self):
        legal = Persona(id="legal", name="Legal")

        with pytest.raises(ValidationError):
            PersonaSet(id="mine", name="Mine", personas=[legal, legal])

    def test_same_id_in_different_sets_is_fine(self):
        legal = Persona(id="legal", name="Legal")

        first = PersonaSet(id="a", name="A", personas=[legal])
        second = PersonaSet(id="b", name="B", personas=[legal])

        assert first.personas[0].id == second.personas[0].id
