"""Pydantic schemas for competitive content analysis.

Value types shared by the metrics engine, resolver, competitor manager
and gap analyzer, plus the request/response bodies of the API:
- ContentMetrics / Keyword / MetricsResult: output of the metrics engine
- ContentRecord / CompetitorRecord: stored documents under analysis
- ContentGap / CompetitiveAdvantage / CompetitiveStrategy: report entries
- GapAnalysisResult: the full report
- Request/response wrappers for the competitive-analysis endpoints

Attributes are snake_case in Python and camelCase on the wire
(wordCount, competitorsCovering, ...). Both spellings are accepted on input.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Priority = Literal["high", "medium", "low"]
TimeFrame = Literal["quick", "medium", "long-term"]
AnalysisSource = Literal["llm", "fallback", "no_competitors", "no_content"]


class CamelModel(BaseModel):
    """Base model serializing to camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ContentMetrics(CamelModel):
    """Objective text metrics for one document."""

    word_count: int = Field(0, ge=0, description="Whitespace-delimited token count")
    readability_score: float = Field(
        0.0, ge=0.0, le=100.0, description="Flesch Reading Ease, clamped to [0, 100]"
    )
    keyword_density: float = Field(
        0.0, ge=0.0, description="Average density of the returned keywords"
    )
    heading_count: int = Field(0, ge=0, description="<h1>-<h6> tags in the markup")
    image_count: int = Field(0, ge=0, description="<img> tags in the markup")
    link_count: int = Field(0, ge=0, description="<a> tags in the markup")
    paragraph_count: int = Field(0, ge=0, description="<p> tags in the markup")


class Keyword(CamelModel):
    """A keyword candidate and its (partly estimated) statistics.

    volume and difficulty are placeholder estimates, not real search data.
    """

    keyword: str = Field(..., description="Lowercase token or phrase")
    count: int = Field(0, ge=0, description="Occurrences in the text")
    density: float = Field(0.0, ge=0.0, description="count / word_count * 100")
    volume: int = Field(0, ge=0, description="Estimated monthly search volume")
    difficulty: int = Field(0, ge=0, description="Estimated ranking difficulty")
    in_title: bool = Field(False, description="Keyword appears in the <title>")
    in_headings: bool = Field(False, description="Keyword appears in a heading")


class MetricsResult(CamelModel):
    """Output of compute_metrics()."""

    metrics: ContentMetrics = Field(default_factory=ContentMetrics)
    keywords: list[Keyword] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


class ContentRecord(CamelModel):
    """A stored document under analysis."""

    id: str | None = Field(None, description="Content UUID, None until persisted")
    url: str = Field("", description="Canonical URL")
    title: str = Field("", description="Display title")
    text: str = Field("", description="Plain body text, may be empty")
    keywords: list[str | Keyword] = Field(
        default_factory=list, description="Target keywords, strings or keyword objects"
    )
    metrics: ContentMetrics | None = Field(None, description="Metrics, if computed")

    def keyword_terms(self) -> set[str]:
        """Lowercased keyword strings for membership checks."""
        terms: set[str] = set()
        for item in self.keywords:
            term = item.keyword if isinstance(item, Keyword) else item
            if term:
                terms.add(term.strip().lower())
        return terms

    @property
    def word_count(self) -> int:
        if self.metrics is not None:
            return self.metrics.word_count
        return len(self.text.split())


class CompetitorRecord(CamelModel):
    """A tracked competitor page.

    text and html are kept for recomputation but never serialized.
    """

    id: str | None = Field(None, description="Competitor UUID")
    project_id: str = Field(..., description="Owning project UUID")
    url: str = Field(..., description="Normalized competitor URL")
    title: str = Field("", description="Display title")
    metrics: ContentMetrics | None = Field(None, description="Computed metrics")
    keywords: list[Keyword] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    text: str | None = Field(None, exclude=True)
    html: str | None = Field(None, exclude=True)
    created_at: datetime | None = Field(None, description="Record creation timestamp")
    updated_at: datetime | None = Field(None, description="Record update timestamp")


class ContentGap(CamelModel):
    """A topic competitors cover that the target does not."""

    topic: str
    description: str
    relevance: str = Field("50", description="String-encoded relevance score")
    suggested_implementation: str
    competitors_covering: int = Field(0, ge=0)
    actionable: bool = True


class CompetitiveAdvantage(CamelModel):
    """An area where the target is ahead of (or behind) competitors."""

    area: str
    description: str
    is_advantage: bool
    competitor_comparison: dict[str, str] | None = Field(
        None, description="Optional label -> value comparison table"
    )


class CompetitiveStrategy(CamelModel):
    """A recommended action."""

    title: str
    description: str
    implementation: str
    priority: Priority = "medium"
    time_frame: TimeFrame = "medium"


class GapAnalysisResult(CamelModel):
    """The competitive gap report."""

    content_gaps: list[ContentGap] = Field(default_factory=list)
    keyword_gaps: list[Keyword] = Field(default_factory=list)
    advantages: list[CompetitiveAdvantage] = Field(default_factory=list)
    disadvantages: list[CompetitiveAdvantage] = Field(default_factory=list)
    strategies: list[CompetitiveStrategy] = Field(default_factory=list)
    competitors: list[CompetitorRecord] = Field(default_factory=list)
    source: AnalysisSource | None = Field(
        None, description="Which path produced the report"
    )


# ---------------------------------------------------------------------------
# API request/response bodies
# ---------------------------------------------------------------------------


class _UrlRequest(CamelModel):
    url: str = Field(
        ...,
        min_length=1,
        max_length=4096,
        description="Page URL, with or without scheme",
        examples=["https://competitor.com/guide", "competitor.com/guide"],
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the URL is not empty."""
        v = v.strip()
        if not v:
            raise ValueError("url cannot be empty")
        return v


class CompetitorCreateRequest(_UrlRequest):
    """Request schema for adding (or refreshing) a competitor."""


class AnalyzeRequest(_UrlRequest):
    """Request schema for running a competitive analysis."""

    refresh: bool = Field(
        False, description="Re-scrape every competitor before analyzing"
    )


class UrlValidationRequest(_UrlRequest):
    """Request schema for URL storage validation."""


class CompetitorListResponse(CamelModel):
    """Response schema for a project's competitors."""

    items: list[CompetitorRecord] = Field(..., description="Competitor records")
    total: int = Field(..., description="Total number of records")


class UrlValidationResult(CamelModel):
    """How a URL would be stored and matched."""

    original_url: str
    normalized_url: str
    original_length: int
    normalized_length: int
    truncated: bool = Field(..., description="Normalized form hit the length limit")
    hostname: str | None = None
    is_valid: bool = Field(..., description="URL parsed with a host")
    exact_match_variants: list[str] = Field(default_factory=list)


class CompetitiveAnalysisResponse(CamelModel):
    """Response schema for an analysis run."""

    analysis_id: str | None = Field(None, description="Stored snapshot ID, if saved")
    content_id: str | None = Field(None, description="Resolved target content ID")
    content_url: str = Field(..., description="Normalized URL the analysis was run for")
    exact_match: bool = Field(False, description="Target URL matched exactly")
    match_strategy: str | None = Field(None, description="Resolver strategy that matched")
    result: GapAnalysisResult


class CompetitiveAnalysisRecord(CamelModel):
    """A stored analysis snapshot."""

    id: str
    project_id: str
    content_id: str | None = None
    content_url: str
    source: str | None = None
    result: GapAnalysisResult
    created_at: datetime | None = None


class CompetitiveAnalysisListResponse(CamelModel):
    """Response schema for a project's stored analyses."""

    items: list[CompetitiveAnalysisRecord] = Field(..., description="Analysis snapshots")
    total: int = Field(..., description="Number of snapshots returned")
