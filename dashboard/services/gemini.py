"""Shared Gemini API utilities.

Provides the async retry executor and client factory used by the digest,
facts, and data-chat services. Failures are classified by the status
fields carried on the error (``code`` / ``status``, as exposed by
``google.genai.errors.APIError``) rather than by inspecting messages.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import random
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any, TypeVar

from google import genai
from google.genai import types

from dashboard.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_RETRIES = 3
_BASE_RETRY_DELAY = 1.0
_MAX_JITTER = 1.0

_TRANSIENT_CODES = frozenset({500})
_TRANSIENT_STATUSES = frozenset({"INTERNAL"})
_RATE_LIMIT_CODES = frozenset({429})
_RATE_LIMIT_STATUSES = frozenset({"RESOURCE_EXHAUSTED"})


class FailureKind(enum.Enum):
    """Retry classification of a failed API call."""

    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    FATAL = "fatal"


def classify_failure(exc: BaseException) -> FailureKind:
    """Classify an error by its ``code`` and ``status`` attributes."""
    code = getattr(exc, "code", None)
    status = getattr(exc, "status", None)

    if code in _RATE_LIMIT_CODES or status in _RATE_LIMIT_STATUSES:
        return FailureKind.RATE_LIMITED
    if code in _TRANSIENT_CODES or status in _TRANSIENT_STATUSES:
        return FailureKind.TRANSIENT
    return FailureKind.FATAL


def backoff_delay(attempt: int, kind: FailureKind) -> float:
    """Return the wait in seconds before retrying after ``attempt`` (0-based)."""
    base = _BASE_RETRY_DELAY * 2 if kind is FailureKind.RATE_LIMITED else _BASE_RETRY_DELAY
    return base * (2**attempt) + random.uniform(0, _MAX_JITTER)


async def with_retry(operation: Callable[[], Awaitable[T]]) -> T:
    """Run an async operation with exponential backoff on retryable failures.

    Server faults (500 / INTERNAL) and rate limiting (429 / RESOURCE_EXHAUSTED)
    are retried up to 3 attempts in total; rate limiting waits twice as long.
    Any other error is re-raised immediately.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.

    Returns:
        The operation's result.

    Raises:
        Exception: The original error when it is fatal or retries are exhausted.
    """
    last_exception: Exception | None = None
    for attempt in range(_MAX_RETRIES):
        try:
            return await operation()
        except Exception as exc:
            kind = classify_failure(exc)
            if kind is FailureKind.FATAL:
                raise
            last_exception = exc
            if attempt < _MAX_RETRIES - 1:
                delay = backoff_delay(attempt, kind)
                logger.warning(
                    "Gemini API call failed (%s, attempt %d/%d), retrying in %.1fs: %s",
                    kind.value,
                    attempt + 1,
                    _MAX_RETRIES,
                    delay,
                    type(exc).__name__,
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    "Gemini API call failed after %d attempts: %s",
                    _MAX_RETRIES,
                    type(exc).__name__,
                )
    raise last_exception  # type: ignore[misc]


def create_gemini_client(settings: Settings | None = None) -> genai.Client:
    """Create a Gemini client from application settings."""
    if settings is None:
        settings = get_settings()
    return genai.Client(api_key=settings.gemini_api_key)


@lru_cache
def get_gemini_client() -> genai.Client:
    """Return the shared Gemini client (FastAPI dependency)."""
    return create_gemini_client()


async def generate_content_with_retry(
    client: genai.Client,
    model: str,
    contents: str | list[Any],
    config: types.GenerateContentConfig | None = None,
) -> types.GenerateContentResponse:
    """Call ``generate_content`` (async) through the retry executor.

    Returns the full response so callers can read grounding metadata
    and prompt feedback as well as the text.
    """
    return await with_retry(
        lambda: client.aio.models.generate_content(
            model=model,
            contents=contents,
            config=config,
        )
    )


async def call_gemini_with_retry(
    client: genai.Client,
    model: str,
    prompt: str,
    config: types.GenerateContentConfig | None = None,
) -> str:
    """Call the Gemini API with retry and return only the response text."""
    response = await generate_content_with_retry(client, model, prompt, config)
    return response.text or ""
