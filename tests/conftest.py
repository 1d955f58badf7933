"""Shared test fixtures.

Replaces the Gemini client, the digest store, and the chat session
registry with test doubles for every request made through the global app.
"""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest

from dashboard.config import get_settings
from dashboard.main import app
from dashboard.services.chat import ChatSessionStore, get_session_store
from dashboard.services.gemini import get_gemini_client
from dashboard.services.storage import InMemoryKeyValueStore, get_digest_store


@pytest.fixture
def gemini_client() -> MagicMock:
    """Gemini client double whose async generate_content is an AsyncMock."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    return client


@pytest.fixture
def digest_store() -> InMemoryKeyValueStore:
    """Empty in-memory digest store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def session_store() -> ChatSessionStore:
    """Empty chat session registry."""
    return ChatSessionStore()


@pytest.fixture(autouse=True)
def override_dependencies(
    gemini_client: MagicMock,
    digest_store: InMemoryKeyValueStore,
    session_store: ChatSessionStore,
) -> Iterator[None]:
    """Inject the test doubles into the global app for each test."""
    app.dependency_overrides[get_gemini_client] = lambda: gemini_client
    app.dependency_overrides[get_digest_store] = lambda: digest_store
    app.dependency_overrides[get_session_store] = lambda: session_store
    yield
    app.dependency_overrides.clear()
    get_settings.cache_clear()
