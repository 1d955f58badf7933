"""Customer Intelligence digest route handlers."""

import logging
from typing import get_args

from fastapi import APIRouter, Depends, HTTPException, Query, status
from google import genai

from dashboard.schemas.digest import (
    CompanyRequest,
    Digest,
    FactsResponse,
    OpenPosition,
    PositionsResponse,
)
from dashboard.services.digest import generate_digest, generate_facts
from dashboard.services.gemini import FailureKind, classify_failure, get_gemini_client
from dashboard.services.normalizer import DigestParseError
from dashboard.services.storage import (
    KeyValueStore,
    find_current_month_digest,
    get_digest_store,
    load_current_month_digests,
    save_digest,
)
from dashboard.services.tables import SortDirection, region_summary, sort_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/digests", tags=["digests"])

_POSITION_COLUMNS = frozenset({"title", "region", "source", "date_posted"})

# Companies with a generation request currently running.
_in_flight: set[str] = set()


def _company_or_400(body: CompanyRequest) -> str:
    company_name = " ".join(body.company_name.split())
    if not company_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter a company name.",
        )
    return company_name


@router.post("/generate", response_model=Digest, status_code=201)
async def create_digest(
    body: CompanyRequest,
    client: genai.Client = Depends(get_gemini_client),
    store: KeyValueStore = Depends(get_digest_store),
) -> Digest:
    """Generate, save, and return a new digest for a company."""
    company_name = _company_or_400(body)
    in_flight_key = company_name.lower()
    if in_flight_key in _in_flight:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A digest for {company_name} is already being generated.",
        )

    _in_flight.add(in_flight_key)
    try:
        digest = await generate_digest(client, company_name)
    except DigestParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to generate digest for {company_name}. {exc}",
        ) from exc
    except Exception as exc:
        logger.exception("Digest generation failed for %s", company_name)
        if classify_failure(exc) is FailureKind.RATE_LIMITED:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="The AI service is rate limiting requests. Please try again in a minute.",
            ) from exc
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=(
                f"Failed to generate digest for {company_name}. The API may be unavailable "
                "or the request may have been blocked."
            ),
        ) from exc
    finally:
        _in_flight.discard(in_flight_key)

    save_digest(store, digest)
    return digest


@router.post("/facts", response_model=FactsResponse)
async def create_facts(
    body: CompanyRequest,
    client: genai.Client = Depends(get_gemini_client),
) -> FactsResponse:
    """Return "Did you know?" facts to show while a digest is generated."""
    company_name = _company_or_400(body)
    facts = await generate_facts(client, company_name)
    return FactsResponse(facts=facts)


@router.get("", response_model=list[Digest])
async def list_digests(
    store: KeyValueStore = Depends(get_digest_store),
) -> list[Digest]:
    """List this month's digests, newest first."""
    return load_current_month_digests(store)


def _digest_or_404(store: KeyValueStore, digest_id: str) -> Digest:
    digest = find_current_month_digest(store, digest_id)
    if digest is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Digest {digest_id} not found",
        )
    return digest


@router.get("/{digest_id}", response_model=Digest)
async def get_digest(
    digest_id: str,
    store: KeyValueStore = Depends(get_digest_store),
) -> Digest:
    """Return a digest saved this month."""
    return _digest_or_404(store, digest_id)


@router.get("/{digest_id}/positions", response_model=PositionsResponse)
async def get_positions(
    digest_id: str,
    sort: str | None = Query(default=None),
    direction: str = Query(default="ascending"),
    store: KeyValueStore = Depends(get_digest_store),
) -> PositionsResponse:
    """Return a digest's open positions, optionally sorted by one column."""
    digest = _digest_or_404(store, digest_id)

    if direction not in get_args(SortDirection):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="direction must be 'ascending' or 'descending'",
        )

    positions: list[OpenPosition] = list(digest.open_positions)
    if sort is not None:
        if sort not in _POSITION_COLUMNS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot sort by {sort}",
            )
        positions = sort_rows(positions, sort, direction)  # type: ignore[arg-type]

    return PositionsResponse(
        positions=positions,
        region_summary=region_summary(digest.open_positions),
    )
