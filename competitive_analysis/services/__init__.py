"""Services layer - Business logic and orchestration.

Services coordinate between repositories, integrations, and other services
to implement business use cases. They contain no direct database or
external API access - that's delegated to repositories and integrations.
"""

from competitive_analysis.services.analysis_coercion import coerce_gap_analysis
from competitive_analysis.services.competitive_analysis import (
    AnalysisServiceError,
    AnalysisValidationError,
    CompetitiveAnalysisService,
    validate_url_storage,
)
from competitive_analysis.services.competitor import (
    CompetitorNotFoundError,
    CompetitorService,
    CompetitorServiceError,
    CompetitorValidationError,
    PageAnalysis,
)
from competitive_analysis.services.content_resolver import (
    ContentResolver,
    ResolvedContent,
)
from competitive_analysis.services.gap_analysis import (
    GapAnalyzer,
    LLMAnalysisResult,
    extract_json_object,
)

__all__ = [
    # Competitive analysis
    "AnalysisServiceError",
    "AnalysisValidationError",
    "CompetitiveAnalysisService",
    "validate_url_storage",
    # Competitor
    "CompetitorNotFoundError",
    "CompetitorService",
    "CompetitorServiceError",
    "CompetitorValidationError",
    "PageAnalysis",
    # Content resolver
    "ContentResolver",
    "ResolvedContent",
    # Gap analysis
    "GapAnalyzer",
    "LLMAnalysisResult",
    "coerce_gap_analysis",
    "extract_json_object",
]
