"""Pydantic request/response schemas for all entities."""

from dashboard.schemas.chat import (
    ChatAnswer,
    ChatProfileResponse,
    ChatQuestion,
    ChatSessionResponse,
)
from dashboard.schemas.digest import (
    CompanyRequest,
    Digest,
    FactsResponse,
    FinancialMetric,
    OpenPosition,
    PositionsResponse,
    RevenuePoint,
    Source,
    TechShare,
)

__all__ = [
    "ChatAnswer",
    "ChatProfileResponse",
    "ChatQuestion",
    "ChatSessionResponse",
    "CompanyRequest",
    "Digest",
    "FactsResponse",
    "FinancialMetric",
    "OpenPosition",
    "PositionsResponse",
    "RevenuePoint",
    "Source",
    "TechShare",
]
