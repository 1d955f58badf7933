"""Natural-language questions over uploaded datasets using the Gemini API.

Answers are returned as the model's raw markdown; the dataset is embedded
in the prompt as JSON, truncated to a fixed number of rows when large.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from google import genai
from google.genai import types

from dashboard.config import Settings, get_settings
from dashboard.services.datasets import Row
from dashboard.services.gemini import generate_content_with_retry

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK = "Could not generate a summary for the provided data."

_CHAT_PROMPT = """\
You are 'Accion Insights Bot', a helpful data analyst. Your ONLY task is to answer questions \
based on the JSON data provided about {description}.
If the answer is not in the data, say: "I'm sorry, but I cannot answer that question based on \
the provided data."

FORMATTING RULES:
- Use Markdown for all responses.
- Use headings (#, ##), bullets (*), and bold text (**text**).
- For lists of items, YOU MUST use a Markdown table.
{truncation_note}
DATA:
```json
{data}
```

Question: "{question}"
"""

_TRUNCATION_NOTE = """
NOTE: The full dataset has {total} rows, but only the first {shown} rows are included below. \
If the answer depends on rows that are not shown, say that your answer covers only the first \
{shown} rows.
"""

_SUMMARY_PROMPT = """\
You are a data analyst. Your task is to provide a concise, factual summary of the provided data \
snippet, which represents {description}.
The summary MUST be a single paragraph and strictly under 150 characters.
Do not add any conversational text or introductions like "This data shows...".
Focus only on key facts like total counts, main categories, or overall status.

Here is the data sample:
```json
{data}
```
"""


class ChatError(RuntimeError):
    """Raised when the model produced no usable answer."""


class ContentBlockedError(ChatError):
    """Raised when the request or answer was blocked by safety filters."""


class EmptyResponseError(ChatError):
    """Raised when the model returned no text."""


def _truncate_rows(dataset: list[Row], max_rows: int) -> tuple[list[Row], str]:
    """Cap the dataset at ``max_rows`` and describe the cut for the model."""
    if len(dataset) <= max_rows:
        return dataset, ""
    note = _TRUNCATION_NOTE.format(total=len(dataset), shown=max_rows)
    return dataset[:max_rows], note


def _build_chat_prompt(
    question: str,
    dataset: list[Row],
    description: str,
    max_rows: int,
) -> str:
    """Build the Gemini prompt for a data question."""
    rows, note = _truncate_rows(dataset, max_rows)
    return _CHAT_PROMPT.format(
        description=description,
        truncation_note=note,
        data=json.dumps(rows, indent=2, ensure_ascii=False, default=str),
        question=question,
    )


def _block_reason(response: Any) -> str | None:
    """Return why the response was blocked, if it was."""
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None) if feedback is not None else None
    if reason:
        return str(reason)

    candidates = getattr(response, "candidates", None) or []
    if candidates and getattr(candidates[0], "finish_reason", None) == types.FinishReason.SAFETY:
        return str(types.FinishReason.SAFETY)
    return None


async def chat(
    client: genai.Client,
    question: str,
    dataset: list[Row],
    description: str,
    system_instruction: str | None = None,
    settings: Settings | None = None,
) -> str:
    """Answer a question about a dataset.

    Args:
        client: Gemini API client.
        question: User question.
        dataset: Rows parsed from the uploaded file.
        description: Plain-language description of what the rows represent.
        system_instruction: Optional analyst persona and column rules.
        settings: Application settings. Uses defaults if None.

    Returns:
        Markdown answer text.

    Raises:
        ContentBlockedError: The model refused on safety grounds.
        EmptyResponseError: The model returned no text.
        Exception: The API error when the call fails or retries run out.
    """
    if settings is None:
        settings = get_settings()

    prompt = _build_chat_prompt(question, dataset, description, settings.uploads.max_chat_rows)
    config = types.GenerateContentConfig(system_instruction=system_instruction) if system_instruction else None

    response = await generate_content_with_retry(client, settings.gemini.model, prompt, config)

    reason = _block_reason(response)
    if reason:
        logger.warning("Chat response blocked: %s", reason)
        raise ContentBlockedError(
            "The request was blocked by the AI service's safety filters. Try rephrasing the question."
        )

    text = (response.text or "").strip()
    if not text:
        raise EmptyResponseError("The AI service returned an empty response.")
    return text


async def generate_data_summary(
    client: genai.Client,
    dataset: list[Row],
    description: str,
    settings: Settings | None = None,
) -> str:
    """Summarize a dataset sample in under 150 characters.

    Never raises; returns a fixed fallback message on failure.
    """
    if settings is None:
        settings = get_settings()

    sample = dataset[: settings.uploads.summary_sample_rows]
    prompt = _SUMMARY_PROMPT.format(
        description=description,
        data=json.dumps(sample, indent=2, ensure_ascii=False, default=str),
    )
    try:
        response = await generate_content_with_retry(client, settings.gemini.model, prompt)
    except Exception:
        logger.exception("Error generating dataset summary")
        return SUMMARY_FALLBACK

    text = (response.text or "").strip() if isinstance(response.text, str) else ""
    return text or SUMMARY_FALLBACK


@dataclass
class ChatSession:
    """Dataset held for one chat conversation."""

    session_id: str
    dataset: list[Row]
    description: str
    system_instruction: str | None = None
    profile_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChatSessionStore:
    """In-process registry of chat sessions; datasets are never persisted.

    Sessions older than ``ttl_seconds`` are dropped on the next ``create``
    or ``get``. A ``ttl_seconds`` of None keeps sessions until deleted.
    """

    def __init__(self, ttl_seconds: float | None = None) -> None:
        self._sessions: dict[str, ChatSession] = {}
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None

    def _purge_expired(self) -> None:
        if self._ttl is None:
            return
        cutoff = datetime.now(timezone.utc) - self._ttl
        expired = [sid for sid, session in self._sessions.items() if session.created_at <= cutoff]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Expired %d chat session(s)", len(expired))

    def create(
        self,
        dataset: list[Row],
        description: str,
        system_instruction: str | None = None,
        profile_id: str | None = None,
    ) -> ChatSession:
        self._purge_expired()
        session = ChatSession(
            session_id=uuid.uuid4().hex,
            dataset=dataset,
            description=description,
            system_instruction=system_instruction,
            profile_id=profile_id,
        )
        self._sessions[session.session_id] = session
        logger.info("Created chat session %s with %d row(s)", session.session_id, len(dataset))
        return session

    def get(self, session_id: str) -> ChatSession | None:
        self._purge_expired()
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


@lru_cache
def get_session_store() -> ChatSessionStore:
    """Return the process-wide chat session registry (FastAPI dependency)."""
    return ChatSessionStore(ttl_seconds=get_settings().uploads.session_ttl_seconds)
