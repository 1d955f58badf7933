"""Data chat service tests."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.genai import types

from dashboard.services.chat import (
    SUMMARY_FALLBACK,
    ChatSessionStore,
    ContentBlockedError,
    EmptyResponseError,
    _build_chat_prompt,
    chat,
    generate_data_summary,
    get_session_store,
)

_ROWS = [
    {"EMP Name": "Ann", "Overall status": "Bench", "Location": "Pune"},
    {"EMP Name": "Bob", "Overall status": "ATG", "Location": None},
    {"EMP Name": "Cid", "Overall status": "Bench", "Location": "Remote"},
]


def _make_settings(max_rows: int = 500, sample_rows: int = 10) -> MagicMock:
    settings = MagicMock()
    settings.gemini.model = "gemini-2.5-flash"
    settings.uploads.max_chat_rows = max_rows
    settings.uploads.summary_sample_rows = sample_rows
    return settings


def _make_response(
    text: str | None,
    block_reason: str | None = None,
    finish_reason: types.FinishReason | None = None,
) -> SimpleNamespace:
    """Build a response shaped like GenerateContentResponse."""
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    candidates = [SimpleNamespace(finish_reason=finish_reason)] if finish_reason else []
    return SimpleNamespace(text=text, prompt_feedback=feedback, candidates=candidates)


# --- prompt building ---


def test_prompt_embeds_data_and_question() -> None:
    prompt = _build_chat_prompt("Who is on the bench?", _ROWS, "bench data", max_rows=500)

    assert "bench data" in prompt
    assert '"EMP Name": "Ann"' in prompt
    assert 'Question: "Who is on the bench?"' in prompt
    assert "NOTE:" not in prompt


def test_prompt_truncates_large_dataset_with_note() -> None:
    prompt = _build_chat_prompt("How many?", _ROWS, "bench data", max_rows=2)

    assert "The full dataset has 3 rows" in prompt
    assert "only the first 2 rows" in prompt
    assert '"Bob"' in prompt
    assert '"Cid"' not in prompt


# --- chat ---


@pytest.mark.asyncio
async def test_chat_returns_trimmed_markdown(gemini_client: MagicMock) -> None:
    gemini_client.aio.models.generate_content.return_value = _make_response(
        "\n## Bench\n* Ann\n* Cid\n"
    )

    answer = await chat(
        gemini_client,
        "Who is on the bench?",
        _ROWS,
        "bench data",
        settings=_make_settings(),
    )

    assert answer == "## Bench\n* Ann\n* Cid"
    call = gemini_client.aio.models.generate_content.await_args
    assert call.kwargs["config"] is None


@pytest.mark.asyncio
async def test_chat_passes_system_instruction(gemini_client: MagicMock) -> None:
    gemini_client.aio.models.generate_content.return_value = _make_response("Two people.")

    await chat(
        gemini_client,
        "How many?",
        _ROWS,
        "bench data",
        system_instruction="You are an RMG analyst.",
        settings=_make_settings(),
    )

    config = gemini_client.aio.models.generate_content.await_args.kwargs["config"]
    assert config.system_instruction == "You are an RMG analyst."


@pytest.mark.asyncio
async def test_chat_blocked_prompt(gemini_client: MagicMock) -> None:
    gemini_client.aio.models.generate_content.return_value = _make_response(
        None, block_reason="SAFETY"
    )

    with pytest.raises(ContentBlockedError):
        await chat(gemini_client, "q", _ROWS, "data", settings=_make_settings())


@pytest.mark.asyncio
async def test_chat_blocked_candidate(gemini_client: MagicMock) -> None:
    gemini_client.aio.models.generate_content.return_value = _make_response(
        None, finish_reason=types.FinishReason.SAFETY
    )

    with pytest.raises(ContentBlockedError):
        await chat(gemini_client, "q", _ROWS, "data", settings=_make_settings())


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, "", "   \n"])
async def test_chat_empty_response(gemini_client: MagicMock, text: str | None) -> None:
    gemini_client.aio.models.generate_content.return_value = _make_response(text)

    with pytest.raises(EmptyResponseError):
        await chat(gemini_client, "q", _ROWS, "data", settings=_make_settings())


@pytest.mark.asyncio
@patch("dashboard.services.gemini.asyncio.sleep", new_callable=AsyncMock)
async def test_chat_propagates_api_errors(
    _mock_sleep: AsyncMock,
    gemini_client: MagicMock,
) -> None:
    gemini_client.aio.models.generate_content.side_effect = ConnectionError("offline")

    with pytest.raises(ConnectionError):
        await chat(gemini_client, "q", _ROWS, "data", settings=_make_settings())


# --- generate_data_summary ---


@pytest.mark.asyncio
async def test_summary_uses_sample_rows(gemini_client: MagicMock) -> None:
    gemini_client.aio.models.generate_content.return_value = _make_response(
        " 3 employees, 2 on bench. "
    )

    summary = await generate_data_summary(
        gemini_client, _ROWS, "bench data", settings=_make_settings(sample_rows=1)
    )

    assert summary == "3 employees, 2 on bench."
    prompt = gemini_client.aio.models.generate_content.await_args.kwargs["contents"]
    assert '"Ann"' in prompt
    assert '"Bob"' not in prompt


@pytest.mark.asyncio
@patch("dashboard.services.gemini.asyncio.sleep", new_callable=AsyncMock)
async def test_summary_falls_back_on_error(
    _mock_sleep: AsyncMock,
    gemini_client: MagicMock,
) -> None:
    gemini_client.aio.models.generate_content.side_effect = RuntimeError("boom")

    summary = await generate_data_summary(
        gemini_client, _ROWS, "bench data", settings=_make_settings()
    )

    assert summary == SUMMARY_FALLBACK


@pytest.mark.asyncio
async def test_summary_falls_back_on_empty_text(gemini_client: MagicMock) -> None:
    gemini_client.aio.models.generate_content.return_value = _make_response(None)

    summary = await generate_data_summary(
        gemini_client, _ROWS, "bench data", settings=_make_settings()
    )

    assert summary == SUMMARY_FALLBACK


# --- ChatSessionStore ---


def test_session_store_lifecycle() -> None:
    store = ChatSessionStore()

    session = store.create(_ROWS, "bench data", system_instruction="rules", profile_id="rmg")

    assert store.get(session.session_id) is session
    assert session.dataset == _ROWS
    assert session.profile_id == "rmg"
    assert store.delete(session.session_id) is True
    assert store.get(session.session_id) is None
    assert store.delete(session.session_id) is False


def test_session_ids_are_unique() -> None:
    store = ChatSessionStore()

    first = store.create(_ROWS, "a")
    second = store.create(_ROWS, "b")

    assert first.session_id != second.session_id


def test_expired_session_is_purged() -> None:
    store = ChatSessionStore(ttl_seconds=60)
    stale = store.create(_ROWS, "old data")
    fresh = store.create(_ROWS, "new data")
    stale.created_at = datetime.now(UTC) - timedelta(seconds=61)

    assert store.get(stale.session_id) is None
    assert store.get(fresh.session_id) is fresh
    assert len(store) == 1


def test_sessions_are_kept_without_ttl() -> None:
    store = ChatSessionStore()
    session = store.create(_ROWS, "data")
    session.created_at = datetime.now(UTC) - timedelta(days=30)

    assert store.get(session.session_id) is session


def test_create_purges_expired_sessions() -> None:
    store = ChatSessionStore(ttl_seconds=60)
    stale = store.create(_ROWS, "old data")
    stale.created_at = datetime.now(UTC) - timedelta(hours=2)

    store.create(_ROWS, "new data")

    assert len(store) == 1
    assert store.delete(stale.session_id) is False


@patch("dashboard.services.chat.get_settings")
def test_session_store_dependency_uses_configured_ttl(mock_get_settings: MagicMock) -> None:
    mock_get_settings.return_value.uploads.session_ttl_seconds = 60
    get_session_store.cache_clear()
    try:
        store = get_session_store()
        session = store.create(_ROWS, "data")
        session.created_at = datetime.now(UTC) - timedelta(seconds=120)

        assert store.get(session.session_id) is None
    finally:
        get_session_store.cache_clear()
