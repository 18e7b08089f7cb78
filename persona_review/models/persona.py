"""Reviewer persona models and the built-in persona sets.

Persona JSON from older exports uses ``system`` / ``instruction`` / ``color``;
both spellings validate into the same model.

Pydantic v2. Extra fields are forbidden to prevent drift.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Persona(BaseModel):
    """One reviewer persona. Immutable for the duration of a run."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: str = Field(min_length=1, description="Unique persona identifier")
    name: str = Field(min_length=1, description="Display name, also used in comment attribution")
    enabled: bool = Field(default=True, description="Disabled personas are skipped by runs")
    system_prompt: str = Field(
        default="",
        validation_alias=AliasChoices("system_prompt", "systemPrompt", "system"),
        description="Who the persona is",
    )
    instruction_prompt: str = Field(
        default="",
        validation_alias=AliasChoices("instruction_prompt", "instructionPrompt", "instruction"),
        description="What the persona should look for",
    )
    display_color: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("display_color", "displayColor", "color"),
        pattern=r"^#[0-9a-fA-F]{6}$",
        description="Hex colour used by UIs",
    )


class PersonaSet(BaseModel):
    """A named group of personas reviewed together."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    personas: List[Persona] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "PersonaSet":
        """Persona ids key the run results, so they must be unique within a set."""
        seen: set[str] = set()
        for persona in self.personas:
            if persona.id in seen:
                raise ValueError(f"Duplicate persona id '{persona.id}' in set '{self.id}'")
            seen.add(persona.id)
        return self

    def enabled_personas(self) -> List[Persona]:
        return [p for p in self.personas if p.enabled]


def _p(id: str, name: str, color: str, system: str, instruction: str) -> Persona:
    return Persona(
        id=id,
        name=name,
        display_color=color,
        system_prompt=system,
        instruction_prompt=instruction,
    )


DEFAULT_PERSONA_SETS: List[PersonaSet] = [
    PersonaSet(
        id="cross-functional",
        name="Cross-Functional Team",
        personas=[
            _p(
                "senior-manager",
                "Senior Manager",
                "#2563eb",
                "You are a senior business leader focused on clear executive communication and decision context.",
                "Score clarity, tone, and alignment. Call out sections that help or hinder exec understanding. "
                "Suggest concise rewrites.",
            ),
            _p(
                "legal",
                "Legal",
                "#7c3aed",
                "You are corporate counsel focused on risk, claims, IP, and contractual language.",
                "Flag ambiguous or risky statements. Suggest safer phrasing. Provide overall risk assessment.",
            ),
            _p(
                "hr",
                "HR",
                "#f59e0b",
                "You are an HR partner focused on inclusive, respectful language and change-management.",
                "Identify wording that could be exclusionary or unclear to broad audiences. "
                "Suggest inclusive alternatives.",
            ),
            _p(
                "tech-lead",
                "Technical Lead",
                "#10b981",
                "You are a pragmatic tech lead focused on feasibility, assumptions, and testability.",
                "Highlight assumptions, missing acceptance criteria, and risks. Provide technical clarifications.",
            ),
            _p(
                "junior-analyst",
                "Junior Analyst",
                "#ef4444",
                "You are a sharp but early-career analyst asking clarifying questions.",
                "Ask 3-5 short, specific questions that would improve understanding.",
            ),
        ],
    ),
    PersonaSet(
        id="marketing-focus",
        name="Marketing Focus Group",
        personas=[
            _p(
                "busy-parent",
                "Busy Parent",
                "#f97316",
                "You juggle work and family. You want benefits and simplicity fast.",
                "React as a busy parent. What's clear/unclear? What convinces you? What's missing?",
            ),
            _p(
                "college-student",
                "College Student",
                "#06b6d4",
                "You're cost-sensitive and social-proof driven.",
                "Call out jargon, price sensitivity, and trust signals you'd need.",
            ),
            _p(
                "retiree",
                "Retiree",
                "#84cc16",
                "You value clarity, safety, and service.",
                "Flag anything confusing or risky. Suggest plainer language.",
            ),
            _p(
                "small-biz-owner",
                "Small Biz Owner",
                "#a855f7",
                "You're pragmatic; ROI and time-to-value matter.",
                "Ask for proof points and concrete outcomes. Flag fluff.",
            ),
        ],
    ),
    PersonaSet(
        id="startup-stakeholders",
        name="Startup Stakeholders",
        personas=[
            _p(
                "founder",
                "Founder",
                "#0ea5e9",
                "You are a founder focused on vision and velocity.",
                "Call out scope creep, misalignment with strategy, and opportunities to simplify.",
            ),
            _p(
                "cto",
                "CTO",
                "#14b8a6",
                "You are a CTO focused on architecture, risk, and scalability.",
                "Identify technical risks and missing non-functional requirements.",
            ),
            _p(
                "cmo",
                "CMO",
                "#f43f5e",
                "You are a CMO focused on positioning and messaging.",
                "Suggest sharper positioning, proof, and resonant language.",
            ),
            _p(
                "vc",
                "VC Investor",
                "#8b5cf6",
                "You are a pragmatic investor.",
                "Probe unit economics, differentiation, and defensibility.",
            ),
            _p(
                "customer",
                "Customer",
                "#f59e0b",
                "You are a prospective customer.",
                "React with your top concerns, value props, and blockers.",
            ),
        ],
    ),
]


def get_default_persona_set(set_id: str) -> Optional[PersonaSet]:
    """Look up a built-in persona set by id."""
    for persona_set in DEFAULT_PERSONA_SETS:
        if persona_set.id == set_id:
            return persona_set
    return None


def load_persona_sets(path: str | Path) -> List[PersonaSet]:
    """Load persona sets from a JSON file.

    Accepts either a list of sets or a mapping of set id -> set (the shape
    the add-in kept in local storage).

    Raises:
        pydantic.ValidationError: If a set or persona is malformed.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = list(data.values())
    return [PersonaSet.model_validate(item) for item in data]
