"""Pytest fixtures for testing."""

from collections.abc import AsyncGenerator, Generator
from typing import Any, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from persona_review.models.persona import Persona
from persona_review.models.review import TextLocation
from persona_review.services.document_surface import TextDocumentSurface
from persona_review.services.session_store import ReviewSessionStore, set_session_store

QUICK_FOX = "The quick brown fox jumps over the lazy dog."


class RecordingSurface(TextDocumentSurface):
    """TextDocumentSurface that records every search needle."""

    def __init__(self, text: str):
        super().__init__(text)
        self.searches: list[str] = []

    async def search(self, needle: str) -> list[TextLocation]:
        self.searches.append(needle)
        return await super().search(needle)


class ScriptedProvider:
    """Completion provider answering from a script keyed by system prompt.

    A script value may be a string, an exception (raised), or a list of
    either (consumed in order across calls).
    """

    def __init__(self, script: dict[str, Any]):
        self.script = {key: list(value) if isinstance(value, list) else value for key, value in script.items()}
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        reply = self.script[system_prompt]
        if isinstance(reply, list):
            reply = reply.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def calls_for(self, system_prompt: str) -> int:
        return sum(1 for system, _ in self.calls if system == system_prompt)

    async def aclose(self) -> None:
        return None


def make_persona(persona_id: str, enabled: bool = True) -> Persona:
    return Persona(
        id=persona_id,
        name=persona_id.title(),
        enabled=enabled,
        system_prompt=f"You are {persona_id}.",
        instruction_prompt=f"Review as {persona_id}.",
    )


@pytest.fixture
def personas() -> list[Persona]:
    """Three enabled personas: alpha, beta, gamma."""
    return [make_persona("alpha"), make_persona("beta"), make_persona("gamma")]


@pytest.fixture
def persona_factory() -> Callable[..., Persona]:
    return make_persona


@pytest.fixture
def surface() -> RecordingSurface:
    """Surface over the quick-brown-fox sentence."""
    return RecordingSurface(QUICK_FOX)


@pytest.fixture
def surface_factory() -> Callable[[str], RecordingSurface]:
    return RecordingSurface


@pytest.fixture
def provider_factory() -> Callable[[dict[str, Any]], ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def session_store() -> Generator[ReviewSessionStore, None, None]:
    """Fresh review store installed as the singleton."""
    store = ReviewSessionStore()
    set_session_store(store)
    yield store
    set_session_store(None)


@pytest_asyncio.fixture
async def client(session_store: ReviewSessionStore) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing."""
    from persona_review.api.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
