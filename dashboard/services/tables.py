"""Sorting and summaries for tabular digest sections."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from typing import Any, Literal, TypeVar

from pydantic import BaseModel

from dashboard.schemas.digest import OpenPosition

SortDirection = Literal["ascending", "descending"]

T = TypeVar("T", bound=BaseModel | Mapping[str, Any])


def _value(row: BaseModel | Mapping[str, Any], key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _kind(value: Any) -> type:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return float
    return type(value)


def sort_rows(rows: Sequence[T], key: str, direction: SortDirection = "ascending") -> list[T]:
    """Stable-sort rows by one column; missing values always go last.

    Ints and floats compare numerically; other mixed types compare as strings.
    """
    present = [row for row in rows if not _is_missing(_value(row, key))]
    missing = [row for row in rows if _is_missing(_value(row, key))]

    values = [_value(row, key) for row in present]
    same_type = len({_kind(value) for value in values}) <= 1
    present.sort(
        key=lambda row: _value(row, key) if same_type else str(_value(row, key)),
        reverse=direction == "descending",
    )
    return present + missing


def region_summary(positions: Sequence[OpenPosition]) -> str | None:
    """Count positions per region, e.g. ``"USA: 2 | Remote: 1"``."""
    if not positions:
        return None
    counts = Counter(position.region or "N/A" for position in positions)
    return " | ".join(f"{region}: {count}" for region, count in counts.items())
