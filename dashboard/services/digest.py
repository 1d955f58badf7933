"""Company digest and fact generation using the Gemini API."""

from __future__ import annotations

import json
import logging
from typing import Any

from google import genai
from google.genai import types

from dashboard.config import Settings, get_settings
from dashboard.schemas.digest import Digest, Source
from dashboard.services.gemini import call_gemini_with_retry, generate_content_with_retry
from dashboard.services.normalizer import dedupe_sources, normalize_digest

logger = logging.getLogger(__name__)

_FACT_COUNT = 7

_DIGEST_PROMPT = """\
CRITICAL REQUIREMENT: All information retrieved for this digest MUST be from the last 3 months. \
Do not include any data, news, or reports older than this period.

Analyze recent news, financial reports, and market data for "{company_name}".
For 'newJoiners' and 'openPositions', you MUST consult sources like LinkedIn, Glassdoor, Indeed, \
Naukri, Monster, Dice, CareerBuilder, ZipRecruiter, TechCrunch, Nasscom, Comparably, other business \
journals, and official company career pages. For 'openPositions', capture a diverse set of global \
regions where available.

Generate a detailed corporate digest targeted at Accionlabs, a software service company looking for \
partnership or sales opportunities. It is crucial that you find and include data for all sections if \
publicly available. If a section's data is truly unavailable, return an empty array [] for list-based \
fields or an empty string "" for text fields, but you must exhaust all search capabilities first.

You MUST return your response as a single, valid JSON object. Do not include any text before or after \
the JSON. Do not use markdown backticks.

The JSON object must have the following structure:
{{
  "overview": "A 1-paragraph summary of recent news, market performance, and general activities.",
  "keyHighlights": ["Exactly 2 of the most important recent highlights, each a concise string."],
  "keyFinancials": [
    {{ "metric": "Market Cap", "value": "e.g., $2.1T" }},
    {{ "metric": "P/E Ratio", "value": "e.g., 30.5" }},
    {{ "metric": "YOY Revenue Growth", "value": "e.g., 15.2%" }},
    {{ "metric": "Net Profit Margin", "value": "e.g., 25.1%" }}
  ],
  "revenueGrowth": [
    {{ "period": "YYYY QX", "revenue": 50.5 }},
    {{ "period": "YYYY QX", "revenue": 52.1 }},
    {{ "period": "YYYY QX", "revenue": 55.3 }}
  ],
  "quarterlyReleases": ["Key takeaways from the most recent quarterly earnings releases."],
  "newsAndPressReleases": ["Summaries of significant recent press releases or major news stories."],
  "newJoiners": ["Full Name - New Role (CXO or VP level hires)."],
  "techFocus": "A paragraph about the key technologies the company is focusing on or developing.",
  "techDistribution": [
    {{ "tech": "Primary Technology Area", "percentage": 40 }},
    {{ "tech": "Secondary Technology Area", "percentage": 30 }},
    {{ "tech": "Other", "percentage": 30 }}
  ],
  "strategicAndHiringInsights": "A paragraph on strategic direction and overall hiring trends.",
  "openPositions": [
    {{ "title": "Senior Frontend Engineer", "link": "https://careers.example.com/job/123", \
"source": "LinkedIn", "datePosted": "YYYY-MM-DD", "region": "USA" }}
  ],
  "attentionPointsForAccionlabs": [
    "Five actionable opportunities, synergies, or pitch angles for Accionlabs."
  ]
}}
"""

_FACTS_PROMPT = """\
Provide {count} interesting and little-known "Did you know?" style facts about {company_name}. \
The facts should be concise, engaging, and suitable for a professional audience."""

_FACTS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "facts": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        )
    },
)


def _build_digest_prompt(company_name: str) -> str:
    """Build the Gemini prompt for digest generation."""
    return _DIGEST_PROMPT.format(company_name=company_name)


def _extract_grounding_sources(response: Any) -> list[Source]:
    """Collect web citations from the first candidate's grounding metadata."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    raw_sources: list[dict[str, Any]] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web is None:
            continue
        raw_sources.append({"link": getattr(web, "uri", None), "title": getattr(web, "title", None)})
    return dedupe_sources(raw_sources)


async def generate_digest(
    client: genai.Client,
    company_name: str,
    settings: Settings | None = None,
) -> Digest:
    """Generate a normalized intelligence digest for a company.

    Uses Google Search grounding so the model can cite recent sources;
    the citations become the digest's ``sources``.

    Args:
        client: Gemini API client.
        company_name: Company to research.
        settings: Application settings. Uses defaults if None.

    Returns:
        Validated digest.

    Raises:
        DigestParseError: The response held no usable JSON object.
        Exception: The API error when the call fails or retries run out.
    """
    if settings is None:
        settings = get_settings()

    logger.info("Generating digest for %s", company_name)
    response = await generate_content_with_retry(
        client,
        settings.gemini.model,
        _build_digest_prompt(company_name),
        config=types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
        ),
    )

    sources = _extract_grounding_sources(response)
    try:
        digest = normalize_digest(response.text or "", company_name, sources)
    except Exception:
        logger.warning("Digest response for %s could not be normalized", company_name)
        raise

    logger.info(
        "Digest %s ready (%d position(s), %d source(s))",
        digest.id,
        len(digest.open_positions),
        len(digest.sources),
    )
    return digest


def _parse_facts_response(text: str) -> list[str]:
    """Parse the facts JSON, keeping non-empty string facts only."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Failed to parse facts response JSON")
        return []
    if not isinstance(data, dict):
        return []
    raw_facts = data.get("facts")
    if not isinstance(raw_facts, list):
        return []
    return [fact.strip() for fact in raw_facts if isinstance(fact, str) and fact.strip()]


async def generate_facts(
    client: genai.Client,
    company_name: str,
    settings: Settings | None = None,
) -> list[str]:
    """Generate "Did you know?" facts shown while a digest is being built.

    Never raises: failures are logged and an empty list is returned so the
    main digest flow is not interrupted.
    """
    if settings is None:
        settings = get_settings()

    try:
        response_text = await call_gemini_with_retry(
            client,
            settings.gemini.model,
            _FACTS_PROMPT.format(count=_FACT_COUNT, company_name=company_name),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=_FACTS_SCHEMA,
            ),
        )
    except Exception:
        logger.exception("Failed to generate facts for %s", company_name)
        return []

    return _parse_facts_response(response_text)
