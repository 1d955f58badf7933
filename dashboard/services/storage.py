"""Month-keyed digest persistence.

Digests are stored in a string key-value store under
``digest-<Company_Name>-<YYYY-MM>``: regenerating a company's digest in
the same month overwrites the previous one. Reads and writes never raise;
failures are logged and degrade to a no-op or an empty result.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol, cast

from pydantic import ValidationError
from supabase import Client

from dashboard.config import get_settings
from dashboard.schemas.digest import Digest
from dashboard.supabase_client import get_supabase_client
from dashboard.time_utils import month_stamp

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "digest-"
_WHITESPACE_RE = re.compile(r"\s+")


class KeyValueStore(Protocol):
    """Synchronous string key-value store with whole-value writes."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def keys(self) -> list[str]: ...


class InMemoryKeyValueStore:
    """Process-local store used in development and tests."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def keys(self) -> list[str]:
        return list(self._items)


class SupabaseKeyValueStore:
    """Key-value store backed by a Supabase table.

    The table holds ``storage_key`` (primary key), ``payload`` (text), and
    ``updated_at``; writes are upserts on ``storage_key``.
    """

    def __init__(self, client: Client, table: str = "digest_records") -> None:
        self._client = client
        self._table = table

    def get(self, key: str) -> str | None:
        result = (
            self._client.table(self._table)
            .select("payload")
            .eq("storage_key", key)
            .execute()
        )
        rows = cast(list[dict[str, Any]], result.data)
        return rows[0]["payload"] if rows else None

    def set(self, key: str, value: str) -> None:
        row = {
            "storage_key": key,
            "payload": value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        self._client.table(self._table).upsert(row, on_conflict="storage_key").execute()

    def keys(self) -> list[str]:
        result = self._client.table(self._table).select("storage_key").execute()
        rows = cast(list[dict[str, Any]], result.data)
        return [row["storage_key"] for row in rows]


@lru_cache
def get_digest_store() -> KeyValueStore:
    """Return the configured digest store (FastAPI dependency).

    Uses Supabase when a URL is configured, otherwise an in-memory store.
    """
    settings = get_settings()
    if settings.supabase_url:
        return SupabaseKeyValueStore(get_supabase_client(), settings.storage.table)
    logger.warning("SUPABASE_URL not set, digests are kept in memory only")
    return InMemoryKeyValueStore()


def storage_key(company_name: str, now: datetime | None = None) -> str:
    """Return the storage key for a company's digest in the given month."""
    company = _WHITESPACE_RE.sub("_", company_name.strip())
    return f"{STORAGE_PREFIX}{company}-{month_stamp(now)}"


def save_digest(store: KeyValueStore, digest: Digest, now: datetime | None = None) -> None:
    """Persist a digest, replacing any earlier one for the company this month."""
    key = storage_key(digest.company_name, now)
    try:
        store.set(key, digest.model_dump_json())
    except Exception:
        logger.exception("Failed to save digest %s under %s", digest.id, key)
        return
    logger.info("Saved digest %s under %s", digest.id, key)


def load_current_month_digests(
    store: KeyValueStore,
    now: datetime | None = None,
) -> list[Digest]:
    """Return this month's digests, newest first.

    Unreadable records are skipped; an unavailable store yields ``[]``.
    """
    suffix = f"-{month_stamp(now)}"
    digests: list[Digest] = []
    try:
        keys = [key for key in store.keys() if key.startswith(STORAGE_PREFIX) and key.endswith(suffix)]
        for key in keys:
            payload = store.get(key)
            if not payload:
                continue
            try:
                digests.append(Digest.model_validate_json(payload))
            except ValidationError:
                logger.warning("Skipping unreadable digest record %s", key)
    except Exception:
        logger.exception("Failed to load digests for %s", suffix.lstrip("-"))
        return []

    digests.sort(key=lambda digest: digest.generated_at_ms, reverse=True)
    return digests


def find_current_month_digest(
    store: KeyValueStore,
    digest_id: str,
    now: datetime | None = None,
) -> Digest | None:
    """Return the current-month digest with the given ID, if stored."""
    for digest in load_current_month_digests(store, now):
        if digest.id == digest_id:
            return digest
    return None
