"""Digest schemas."""

from pydantic import BaseModel, Field


class Source(BaseModel):
    """Grounding citation returned alongside a digest."""

    link: str
    title: str


class FinancialMetric(BaseModel):
    """Named financial figure, e.g. Market Cap / $2.1T."""

    metric: str
    value: str


class RevenuePoint(BaseModel):
    """Revenue for a single reporting period."""

    period: str
    revenue: float


class TechShare(BaseModel):
    """Share of the company's technology focus."""

    tech: str
    percentage: float


class OpenPosition(BaseModel):
    """Job opening found for the company."""

    title: str
    link: str
    source: str = ""
    date_posted: str = ""
    region: str = "N/A"


class Digest(BaseModel):
    """Validated intelligence report for one company."""

    id: str
    company_name: str
    overview: str = ""
    key_highlights: list[str] = Field(default_factory=list)
    key_financials: list[FinancialMetric] = Field(default_factory=list)
    revenue_growth: list[RevenuePoint] = Field(default_factory=list)
    quarterly_releases: list[str] = Field(default_factory=list)
    news_and_press_releases: list[str] = Field(default_factory=list)
    new_joiners: list[str] = Field(default_factory=list)
    tech_focus: str = ""
    tech_distribution: list[TechShare] = Field(default_factory=list)
    strategic_and_hiring_insights: str = ""
    open_positions: list[OpenPosition] = Field(default_factory=list)
    attention_points: list[str] = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)

    @property
    def generated_at_ms(self) -> int:
        """Return the generation timestamp embedded at the end of ``id``."""
        suffix = self.id.rsplit("-", 1)[-1]
        return int(suffix) if suffix.isdigit() else 0


class CompanyRequest(BaseModel):
    """Request body naming the company to research."""

    company_name: str


class FactsResponse(BaseModel):
    """'Did you know' facts shown while a digest is generated."""

    facts: list[str]


class PositionsResponse(BaseModel):
    """Open positions of a digest, sorted for table display."""

    positions: list[OpenPosition]
    region_summary: str | None = None
