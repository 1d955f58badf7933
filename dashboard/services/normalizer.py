"""Normalization of raw Gemini digest responses.

The model is asked for a JSON object but may wrap it in prose or code
fences, omit sections, or return entries of the wrong shape. This module
is the single place where that text becomes a trusted ``Digest``: either
every field is present and valid, or a ``DigestParseError`` is raised.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from dashboard.schemas.digest import (
    Digest,
    FinancialMetric,
    OpenPosition,
    RevenuePoint,
    Source,
    TechShare,
)
from dashboard.time_utils import epoch_millis

logger = logging.getLogger(__name__)

_RAW_EXCERPT_LENGTH = 500

_CODE_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)
_CITATION_RE = re.compile(r"\s*\[\d+(?:\s*,\s*\d+)*\]")
_WHITESPACE_RE = re.compile(r"\s+")

# Model key -> Digest field
_TEXT_FIELDS = {
    "overview": "overview",
    "techFocus": "tech_focus",
    "strategicAndHiringInsights": "strategic_and_hiring_insights",
}
_STRING_LIST_FIELDS = {
    "keyHighlights": "key_highlights",
    "quarterlyReleases": "quarterly_releases",
    "newsAndPressReleases": "news_and_press_releases",
    "newJoiners": "new_joiners",
    "attentionPointsForAccionlabs": "attention_points",
}
_STRUCTURED_LIST_FIELDS = (
    "keyFinancials",
    "revenueGrowth",
    "techDistribution",
    "openPositions",
)

_DEFAULT_SHAPE: dict[str, Any] = {
    **{key: "" for key in _TEXT_FIELDS},
    **{key: [] for key in _STRING_LIST_FIELDS},
    **{key: [] for key in _STRUCTURED_LIST_FIELDS},
}


class DigestParseError(ValueError):
    """Raised when a model response cannot be turned into a digest."""


class NoJsonObjectError(DigestParseError):
    """Raised when the response contains no ``{...}`` span at all."""


class MalformedResponseError(DigestParseError):
    """Raised when the ``{...}`` span is not a valid JSON object."""


def clean_text(value: Any) -> str:
    """Strip citation markers like ``[3]`` or ``[3, 14]`` and collapse whitespace."""
    if not isinstance(value, str):
        return ""
    without_citations = _CITATION_RE.sub("", value)
    return _WHITESPACE_RE.sub(" ", without_citations).strip()


def _strip_code_fence(text: str) -> str:
    match = _CODE_FENCE_RE.match(text)
    return match.group(1) if match else text


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the outermost ``{...}`` span of a model response.

    Raises:
        NoJsonObjectError: No opening or closing brace was found.
        MalformedResponseError: The span does not parse as a JSON object.
    """
    body = _strip_code_fence(text or "")
    start = body.find("{")
    end = body.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise NoJsonObjectError("No JSON object found in the AI response.")

    excerpt = (text or "")[:_RAW_EXCERPT_LENGTH]
    try:
        parsed = json.loads(body[start : end + 1])
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(
            f"The AI returned malformed data: {exc.msg}. Response began with: {excerpt!r}"
        ) from exc

    if not isinstance(parsed, dict):
        raise MalformedResponseError(
            f"The AI returned malformed data (not an object). Response began with: {excerpt!r}"
        )
    return parsed


def _merge_defaults(parsed: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay the parsed object on the default shape, rejecting wrong types."""
    merged = {**_DEFAULT_SHAPE, **parsed}
    for key, default in _DEFAULT_SHAPE.items():
        if not isinstance(merged[key], type(default)):
            logger.debug("Digest field %s has unexpected type, using default", key)
            merged[key] = default
    return merged


def _clean_string_list(items: Iterable[Any]) -> list[str]:
    cleaned = (clean_text(item) for item in items)
    return [item for item in cleaned if item]


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _financials(items: list[Any]) -> list[FinancialMetric]:
    return [
        FinancialMetric(metric=item["metric"].strip(), value=item["value"].strip())
        for item in items
        if isinstance(item, dict)
        and _non_empty_str(item.get("metric"))
        and _non_empty_str(item.get("value"))
    ]


def _revenue_points(items: list[Any]) -> list[RevenuePoint]:
    return [
        RevenuePoint(period=item["period"].strip(), revenue=item["revenue"])
        for item in items
        if isinstance(item, dict)
        and _non_empty_str(item.get("period"))
        and _is_number(item.get("revenue"))
    ]


def _tech_shares(items: list[Any]) -> list[TechShare]:
    return [
        TechShare(tech=item["tech"].strip(), percentage=item["percentage"])
        for item in items
        if isinstance(item, dict)
        and _non_empty_str(item.get("tech"))
        and _is_number(item.get("percentage"))
    ]


def _open_positions(items: list[Any]) -> list[OpenPosition]:
    positions: list[OpenPosition] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = clean_text(item.get("title"))
        link = item.get("link")
        if not title or not _non_empty_str(link):
            continue
        positions.append(
            OpenPosition(
                title=title,
                link=link.strip(),
                source=clean_text(item.get("source")),
                date_posted=clean_text(item.get("datePosted")),
                region=clean_text(item.get("region")) or "N/A",
            )
        )
    return positions


def dedupe_sources(sources: Iterable[Source | Mapping[str, Any]]) -> list[Source]:
    """Keep the first source per link, dropping entries without link or title."""
    seen: set[str] = set()
    unique: list[Source] = []
    for source in sources:
        if isinstance(source, Source):
            link, title = source.link, source.title
        elif isinstance(source, Mapping):
            link, title = source.get("link"), source.get("title")
        else:
            continue
        if not _non_empty_str(link) or not _non_empty_str(title) or link in seen:
            continue
        seen.add(link)
        unique.append(Source(link=link, title=title))
    return unique


def make_digest_id(company_name: str, now: datetime | None = None) -> str:
    """Build the ``<company>-<epoch ms>`` identity of a new digest."""
    slug = _WHITESPACE_RE.sub("-", company_name.strip())
    return f"{slug}-{epoch_millis(now)}"


def normalize_digest(
    raw_text: str,
    company_name: str,
    sources: Iterable[Source | Mapping[str, Any]] = (),
    now: datetime | None = None,
) -> Digest:
    """Turn a raw model response into a validated ``Digest``.

    Args:
        raw_text: Response text, possibly wrapped in prose or code fences.
        company_name: Company the digest is about.
        sources: Grounding citations reported with the response.
        now: Generation time used for the digest ID. Defaults to now.

    Returns:
        Fully populated digest with sanitized text and filtered lists.

    Raises:
        NoJsonObjectError: No JSON object in the response.
        MalformedResponseError: The JSON object could not be parsed.
    """
    data = _merge_defaults(extract_json_object(raw_text))

    fields: dict[str, Any] = {}
    for key, field_name in _TEXT_FIELDS.items():
        fields[field_name] = clean_text(data[key])
    for key, field_name in _STRING_LIST_FIELDS.items():
        fields[field_name] = _clean_string_list(data[key])

    return Digest(
        id=make_digest_id(company_name, now),
        company_name=company_name,
        key_financials=_financials(data["keyFinancials"]),
        revenue_growth=_revenue_points(data["revenueGrowth"]),
        tech_distribution=_tech_shares(data["techDistribution"]),
        open_positions=_open_positions(data["openPositions"]),
        sources=dedupe_sources(sources),
        **fields,
    )
