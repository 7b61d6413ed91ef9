"""Coercion of loosely-structured model output into a GapAnalysisResult.

The language model is asked for a JSON report but its output is not
trusted: fields may be missing, mistyped, spelled in snake_case instead
of camelCase, or hold words where numbers are expected. Everything here
fills defaults instead of failing, and entries that are not objects are
skipped.
"""

import math
from typing import Any

from competitive_analysis.core.logging import get_logger
from competitive_analysis.schemas.content_analysis import (
    CompetitiveAdvantage,
    CompetitiveStrategy,
    ContentGap,
    GapAnalysisResult,
    Keyword,
    Priority,
    TimeFrame,
)

logger = get_logger(__name__)

DEFAULT_RELEVANCE = "50"
DEFAULT_VOLUME = 500
DEFAULT_DIFFICULTY = 50
DEFAULT_COMPETITORS_COVERING = 2

RELEVANCE_LEVELS = {"high": "80", "medium": "50", "low": "20"}
COVERAGE_LEVELS = {"high": 3, "medium": 2, "low": 1}

_PRIORITIES: tuple[Priority, ...] = ("high", "medium", "low")
_TIME_FRAME_ALIASES: dict[str, TimeFrame] = {
    "quick": "quick",
    "short": "quick",
    "short-term": "quick",
    "medium": "medium",
    "medium-term": "medium",
    "long": "long-term",
    "long-term": "long-term",
}


def _to_snake(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key)


def _get(entry: dict[str, Any], key: str) -> Any:
    """Read a camelCase key, falling back to its snake_case spelling."""
    if key in entry:
        return entry[key]
    return entry.get(_to_snake(key))


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return default


def _int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    if isinstance(value, int | float):
        return max(0, int(value))
    return default


def _float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return default
        if math.isfinite(number):
            return max(0.0, number)
    return default


def _bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def coerce_relevance(value: Any) -> str:
    """Relevance as a string-encoded score.

    Numbers are stringified, high/medium/low map to 80/50/20 and anything
    else becomes "50".
    """
    if isinstance(value, bool):
        return DEFAULT_RELEVANCE
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return DEFAULT_RELEVANCE
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in RELEVANCE_LEVELS:
            return RELEVANCE_LEVELS[lowered]
        try:
            number = float(lowered)
        except ValueError:
            return DEFAULT_RELEVANCE
        return lowered if math.isfinite(number) else DEFAULT_RELEVANCE
    return DEFAULT_RELEVANCE


def coerce_competitors_covering(entry: dict[str, Any]) -> int:
    value = _get(entry, "competitorsCovering")
    if isinstance(value, int | float) and not isinstance(value, bool):
        return _int(value, DEFAULT_COMPETITORS_COVERING)
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            return int(value.strip())
        except ValueError:
            return DEFAULT_COMPETITORS_COVERING

    coverage = _get(entry, "competitorCoverage")
    if isinstance(coverage, str) and coverage.strip().lower() in COVERAGE_LEVELS:
        return COVERAGE_LEVELS[coverage.strip().lower()]
    return DEFAULT_COMPETITORS_COVERING


def coerce_priority(value: Any) -> Priority:
    if isinstance(value, str) and value.strip().lower() in _PRIORITIES:
        return value.strip().lower()  # type: ignore[return-value]
    return "medium"


def coerce_time_frame(value: Any) -> TimeFrame:
    if isinstance(value, str):
        return _TIME_FRAME_ALIASES.get(value.strip().lower(), "medium")
    return "medium"


def coerce_content_gap(entry: dict[str, Any]) -> ContentGap:
    return ContentGap(
        topic=_text(_get(entry, "topic"), "Unknown topic"),
        description=_text(_get(entry, "description"), "No description provided"),
        relevance=coerce_relevance(_get(entry, "relevance")),
        suggested_implementation=_text(
            _get(entry, "suggestedImplementation"), "No implementation provided"
        ),
        competitors_covering=coerce_competitors_covering(entry),
        actionable=_bool(_get(entry, "actionable"), True),
    )


def coerce_keyword(entry: dict[str, Any] | str) -> Keyword:
    if isinstance(entry, str):
        entry = {"keyword": entry}
    return Keyword(
        keyword=_text(_get(entry, "keyword"), "Unknown keyword").lower(),
        count=_int(_get(entry, "count"), 0),
        density=_float(_get(entry, "density"), 0.0),
        volume=_int(_get(entry, "volume"), DEFAULT_VOLUME),
        difficulty=_int(_get(entry, "difficulty"), DEFAULT_DIFFICULTY),
        in_title=_bool(_get(entry, "inTitle"), False),
        in_headings=_bool(_get(entry, "inHeadings"), False),
    )


def coerce_advantage(entry: dict[str, Any], is_advantage: bool) -> CompetitiveAdvantage:
    comparison = _get(entry, "competitorComparison")
    if isinstance(comparison, dict):
        comparison = {str(k): str(v) for k, v in comparison.items()}
    else:
        comparison = None

    return CompetitiveAdvantage(
        area=_text(_get(entry, "area"), "Unknown area"),
        description=_text(_get(entry, "description"), "No description provided"),
        is_advantage=_bool(_get(entry, "isAdvantage"), is_advantage),
        competitor_comparison=comparison,
    )


def coerce_strategy(entry: dict[str, Any]) -> CompetitiveStrategy:
    return CompetitiveStrategy(
        title=_text(_get(entry, "title"), "Untitled strategy"),
        description=_text(_get(entry, "description"), "No description provided"),
        implementation=_text(_get(entry, "implementation"), "No implementation provided"),
        priority=coerce_priority(_get(entry, "priority")),
        time_frame=coerce_time_frame(_get(entry, "timeFrame")),
    )


def coerce_gap_analysis(data: Any) -> GapAnalysisResult:
    """Build a GapAnalysisResult from arbitrary decoded JSON.

    Never raises. A non-object input yields an empty result; list
    entries of the wrong shape are dropped.
    """
    if not isinstance(data, dict):
        logger.warning(
            "Analysis payload is not an object",
            extra={"payload_type": type(data).__name__},
        )
        return GapAnalysisResult()

    skipped = 0

    content_gaps: list[ContentGap] = []
    for entry in _list(_get(data, "contentGaps")):
        if isinstance(entry, dict):
            content_gaps.append(coerce_content_gap(entry))
        else:
            skipped += 1

    keyword_gaps: list[Keyword] = []
    for entry in _list(_get(data, "keywordGaps")):
        if isinstance(entry, dict) or (isinstance(entry, str) and entry.strip()):
            keyword_gaps.append(coerce_keyword(entry))
        else:
            skipped += 1

    sides: dict[str, list[CompetitiveAdvantage]] = {"advantages": [], "disadvantages": []}
    for key, entries in sides.items():
        for entry in _list(_get(data, key)):
            if isinstance(entry, dict):
                entries.append(coerce_advantage(entry, is_advantage=key == "advantages"))
            else:
                skipped += 1

    strategies: list[CompetitiveStrategy] = []
    for entry in _list(_get(data, "strategies")):
        if isinstance(entry, dict):
            strategies.append(coerce_strategy(entry))
        else:
            skipped += 1

    if skipped:
        logger.info("Skipped malformed analysis entries", extra={"skipped_count": skipped})

    return GapAnalysisResult(
        content_gaps=content_gaps,
        keyword_gaps=keyword_gaps,
        advantages=sides["advantages"],
        disadvantages=sides["disadvantages"],
        strategies=strategies,
    )
