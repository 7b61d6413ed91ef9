"""Schemas layer - Pydantic models for API validation.

Schemas define the shape of data for API requests and responses.
They handle validation, serialization, and documentation.
"""

from competitive_analysis.schemas.content_analysis import (
    AnalysisSource,
    AnalyzeRequest,
    CompetitiveAdvantage,
    CompetitiveAnalysisListResponse,
    CompetitiveAnalysisRecord,
    CompetitiveAnalysisResponse,
    CompetitiveStrategy,
    CompetitorCreateRequest,
    CompetitorListResponse,
    CompetitorRecord,
    ContentGap,
    ContentMetrics,
    ContentRecord,
    GapAnalysisResult,
    Keyword,
    MetricsResult,
    Priority,
    TimeFrame,
    UrlValidationRequest,
    UrlValidationResult,
)

__all__ = [
    "AnalysisSource",
    "AnalyzeRequest",
    "CompetitiveAdvantage",
    "CompetitiveAnalysisListResponse",
    "CompetitiveAnalysisRecord",
    "CompetitiveAnalysisResponse",
    "CompetitiveStrategy",
    "CompetitorCreateRequest",
    "CompetitorListResponse",
    "CompetitorRecord",
    "ContentGap",
    "ContentMetrics",
    "ContentRecord",
    "GapAnalysisResult",
    "Keyword",
    "MetricsResult",
    "Priority",
    "TimeFrame",
    "UrlValidationRequest",
    "UrlValidationResult",
]
