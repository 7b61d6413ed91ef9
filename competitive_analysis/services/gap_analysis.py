"""GapAnalyzer for comparing a target page against its competitors.

Produces a GapAnalysisResult (content gaps, keyword gaps, advantages,
disadvantages, strategies). Claude is tried first; its JSON output is
extracted from free text and coerced into shape. When Claude is not
configured, times out, errors or returns unusable output, a
deterministic fallback built from word counts and keyword overlap is
used instead.

analyze() never raises. Every result echoes the input competitors and
carries a source tag naming the path that produced it.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Log all exceptions with full stack trace and context
- Log fallback decisions with the reason
- Add timing logs for operations >1 second
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any

from competitive_analysis.core.config import get_settings
from competitive_analysis.core.logging import analysis_logger, claude_logger, get_logger
from competitive_analysis.integrations.claude import ClaudeClient
from competitive_analysis.schemas.content_analysis import (
    AnalysisSource,
    CompetitiveAdvantage,
    CompetitiveStrategy,
    CompetitorRecord,
    ContentGap,
    ContentRecord,
    GapAnalysisResult,
    Keyword,
)
from competitive_analysis.services.analysis_coercion import coerce_gap_analysis
from competitive_analysis.utils.url import extract_hostname, extract_path

logger = get_logger(__name__)

# Threshold for logging slow operations
SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

PROMPT_KEYWORDS_PER_COMPETITOR = 5
LLM_MAX_TOKENS = 2048

SHORT_CONTENT_RATIO = 0.8
LONG_CONTENT_RATIO = 1.2
MIN_KEYWORD_COMPETITORS = 2
MAX_KEYWORD_GAPS = 5

SYSTEM_PROMPT = """You are an SEO content strategist. You compare a page against \
its competitors and report what it is missing and how to improve it.

Respond with ONLY a JSON object, no other text, in this shape:
{
  "contentGaps": [{"topic": str, "description": str, "relevance": "0-100", \
"suggestedImplementation": str, "competitorsCovering": int, "actionable": bool}],
  "keywordGaps": [{"keyword": str, "count": int, "density": float, \
"volume": int, "difficulty": int, "inTitle": bool, "inHeadings": bool}],
  "advantages": [{"area": str, "description": str, "isAdvantage": true}],
  "disadvantages": [{"area": str, "description": str, "isAdvantage": false}],
  "strategies": [{"title": str, "description": str, "implementation": str, \
"priority": "high|medium|low", "timeFrame": "quick|medium|long-term"}]
}"""


@dataclass
class LLMAnalysisResult:
    """Outcome of the Claude attempt.

    On success, analysis holds the coerced result; otherwise error
    describes why the fallback must run.
    """

    success: bool
    analysis: GapAnalysisResult | None = None
    error: str | None = None


def extract_json_object(text: str) -> str | None:
    """Return the first balanced {...} span in text, or None.

    Braces inside JSON strings (including escaped quotes) are ignored, so
    surrounding prose and code fences are tolerated.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def _last_path_segment(url: str) -> str:
    segments = [s for s in extract_path(url).split("/") if s]
    return segments[-1] if segments else ""


def _topic_from_url(url: str) -> str:
    segment = _last_path_segment(url)
    words = " ".join(segment.replace("-", " ").replace("_", " ").split())
    if words:
        return words
    return extract_hostname(url) or "Page content"


class GapAnalyzer:
    """Builds competitive gap reports."""

    def __init__(
        self,
        llm: ClaudeClient | None = None,
        timeout: float | None = None,
        max_prompt_competitors: int | None = None,
    ) -> None:
        """Initialize analyzer.

        Args:
            llm: Claude client; None disables the LLM path
            timeout: Bound on the whole LLM attempt in seconds. Defaults to settings.
            max_prompt_competitors: Competitors summarized in the prompt.
                Defaults to settings.
        """
        settings = get_settings()
        self._llm = llm
        self._timeout = timeout or settings.analysis_llm_timeout
        self._max_prompt_competitors = (
            max_prompt_competitors or settings.analysis_max_prompt_competitors
        )

    async def analyze(
        self,
        target: ContentRecord | None,
        competitors: list[CompetitorRecord],
    ) -> GapAnalysisResult:
        """Compare target against competitors.

        Args:
            target: The page being analyzed (None or text-less if not found)
            competitors: Competitor records, ideally with metrics

        Returns:
            GapAnalysisResult with competitors echoed and source set
        """
        start_time = time.monotonic()
        competitors = list(competitors)
        analysis_logger.analysis_start(target.url if target else None, len(competitors))

        if not competitors:
            result = GapAnalysisResult()
            source: AnalysisSource = "no_competitors"
        elif target is None or not target.text.strip():
            result = self._minimal_result(target, competitors)
            source = "no_content"
        else:
            llm_result = await self._run_llm_analysis(target, competitors)
            if llm_result.success and llm_result.analysis is not None:
                result = llm_result.analysis
                source = "llm"
            else:
                analysis_logger.fallback_used(
                    llm_result.error or "unknown", len(competitors)
                )
                result = self._fallback_analysis(target, competitors)
                source = "fallback"

        result = result.model_copy(update={"competitors": competitors, "source": source})

        duration_ms = (time.monotonic() - start_time) * 1000
        analysis_logger.analysis_complete(
            source,
            duration_ms,
            len(result.content_gaps),
            len(result.keyword_gaps),
            len(result.strategies),
        )
        if duration_ms > SLOW_OPERATION_THRESHOLD_MS:
            logger.warning(
                "Slow gap analysis",
                extra={"source": source, "duration_ms": round(duration_ms, 2)},
            )
        return result

    # ------------------------------------------------------------------
    # Short-circuit results
    # ------------------------------------------------------------------

    def _minimal_result(
        self, target: ContentRecord | None, competitors: list[CompetitorRecord]
    ) -> GapAnalysisResult:
        """Single gap seeded from the URL when there is no text to compare."""
        url = target.url if target else ""
        topic = _topic_from_url(url)
        return GapAnalysisResult(
            content_gaps=[
                ContentGap(
                    topic=topic,
                    description=(
                        f"No content is available for {url or 'this page'}, "
                        "so it cannot be compared with competitors."
                    ),
                    relevance="80",
                    suggested_implementation=(
                        f"Create comprehensive content about {topic}."
                    ),
                    competitors_covering=len(competitors),
                    actionable=True,
                )
            ]
        )

    # ------------------------------------------------------------------
    # LLM path
    # ------------------------------------------------------------------

    def _build_prompt(
        self, target: ContentRecord, competitors: list[CompetitorRecord]
    ) -> str:
        lines = [
            "Target page:",
            f"- URL: {target.url}",
            f"- Title: {target.title or 'Untitled'}",
            f"- Word count: {target.word_count}",
        ]
        terms = sorted(target.keyword_terms())
        if terms:
            lines.append(f"- Target keywords: {', '.join(terms[:10])}")

        lines.append("")
        lines.append("Competitors:")
        for index, competitor in enumerate(
            competitors[: self._max_prompt_competitors], start=1
        ):
            word_count = competitor.metrics.word_count if competitor.metrics else 0
            keywords = ", ".join(
                k.keyword for k in competitor.keywords[:PROMPT_KEYWORDS_PER_COMPETITOR]
            )
            lines.append(
                f"{index}. {competitor.title or competitor.url} ({competitor.url}), "
                f"{word_count} words; keywords: {keywords or 'none'}"
            )

        lines.append("")
        lines.append(
            "Identify content gaps, keyword gaps, advantages, disadvantages "
            "and strategies for the target page."
        )
        return "\n".join(lines)

    @staticmethod
    def _parse_response(text: str) -> tuple[dict[str, Any] | None, str | None]:
        """Extract and decode the JSON object from a model response."""
        span = extract_json_object(text)
        if span is None:
            return None, "no JSON object in response"
        try:
            data = json.loads(span)
        except json.JSONDecodeError as e:
            return None, f"invalid JSON: {e.msg}"
        except (ValueError, RecursionError) as e:
            return None, f"undecodable JSON: {type(e).__name__}"
        if not isinstance(data, dict):
            return None, "JSON value is not an object"
        return data, None

    async def _run_llm_analysis(
        self, target: ContentRecord, competitors: list[CompetitorRecord]
    ) -> LLMAnalysisResult:
        """Try Claude. Never raises; failures come back as success=False."""
        if self._llm is None or not self._llm.available:
            claude_logger.graceful_fallback("gap_analysis", "Claude not configured")
            return LLMAnalysisResult(success=False, error="Claude not configured")

        prompt = self._build_prompt(target, competitors)
        try:
            completion = await asyncio.wait_for(
                self._llm.complete(
                    user_prompt=prompt,
                    system_prompt=SYSTEM_PROMPT,
                    max_tokens=LLM_MAX_TOKENS,
                    temperature=0.0,
                ),
                timeout=self._timeout,
            )
        except TimeoutError:
            claude_logger.timeout(self._llm.model, self._timeout)
            return LLMAnalysisResult(
                success=False, error=f"Claude timed out after {self._timeout}s"
            )
        except Exception as e:
            logger.error(
                "Claude gap analysis raised",
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            return LLMAnalysisResult(success=False, error=f"{type(e).__name__}: {e}")

        if not completion.success or not completion.text:
            return LLMAnalysisResult(
                success=False, error=completion.error or "Empty response from Claude"
            )

        data, parse_error = self._parse_response(completion.text)
        if data is None:
            analysis_logger.llm_parse_failure(parse_error or "unknown", completion.text)
            return LLMAnalysisResult(success=False, error=parse_error)

        try:
            analysis = coerce_gap_analysis(data)
        except Exception as e:
            analysis_logger.llm_parse_failure(
                f"coercion failed: {type(e).__name__}", completion.text
            )
            return LLMAnalysisResult(success=False, error=f"{type(e).__name__}: {e}")

        return LLMAnalysisResult(success=True, analysis=analysis)

    # ------------------------------------------------------------------
    # Deterministic fallback
    # ------------------------------------------------------------------

    def _fallback_analysis(
        self, target: ContentRecord, competitors: list[CompetitorRecord]
    ) -> GapAnalysisResult:
        content_gaps: list[ContentGap] = []
        advantages: list[CompetitiveAdvantage] = []
        disadvantages: list[CompetitiveAdvantage] = []
        strategies: list[CompetitiveStrategy] = []

        target_words = target.word_count
        competitor_words = [c.metrics.word_count if c.metrics else 0 for c in competitors]
        average = sum(competitor_words) / len(competitor_words)
        average_display = round(average)

        if average > 0 and target_words < SHORT_CONTENT_RATIO * average:
            content_gaps.append(
                ContentGap(
                    topic="Content length",
                    description=(
                        f"Your content ({target_words} words) is shorter than the "
                        f"competitor average ({average_display} words)."
                    ),
                    relevance="80",
                    suggested_implementation=(
                        f"Expand the content to at least {average_display} words "
                        "with more depth and examples."
                    ),
                    competitors_covering=len(competitors),
                    actionable=True,
                )
            )
            disadvantages.append(
                CompetitiveAdvantage(
                    area="Content length",
                    description=(
                        f"Your content has {target_words} words while competitors "
                        f"average {average_display} words."
                    ),
                    is_advantage=False,
                    competitor_comparison={
                        "yourWordCount": str(target_words),
                        "competitorAverageWordCount": str(average_display),
                    },
                )
            )
            strategies.append(
                CompetitiveStrategy(
                    title="Expand content",
                    description=(
                        "Competitors cover the topic in more depth. Longer, "
                        "comprehensive content tends to rank better."
                    ),
                    implementation=(
                        f"Add sections to reach roughly {average_display} words, "
                        "covering subtopics competitors address."
                    ),
                    priority="high",
                    time_frame="medium",
                )
            )
        elif average > 0 and target_words > LONG_CONTENT_RATIO * average:
            advantages.append(
                CompetitiveAdvantage(
                    area="Content length",
                    description=(
                        f"Your content has {target_words} words, more than the "
                        f"competitor average of {average_display} words."
                    ),
                    is_advantage=True,
                    competitor_comparison={
                        "yourWordCount": str(target_words),
                        "competitorAverageWordCount": str(average_display),
                    },
                )
            )

        keyword_gaps = self._keyword_gaps(target, competitors)

        if not strategies:
            strategies.append(
                CompetitiveStrategy(
                    title="Monitor competitor content",
                    description="Keep track of competitor updates to maintain your position.",
                    implementation=(
                        "Re-run this analysis regularly and review new topics "
                        "and keywords competitors add."
                    ),
                    priority="low",
                    time_frame="long-term",
                )
            )

        return GapAnalysisResult(
            content_gaps=content_gaps,
            keyword_gaps=keyword_gaps,
            advantages=advantages,
            disadvantages=disadvantages,
            strategies=strategies,
        )

    @staticmethod
    def _keyword_gaps(
        target: ContentRecord, competitors: list[CompetitorRecord]
    ) -> list[Keyword]:
        """Keywords used by at least two competitors but absent from the target."""
        seen: dict[str, dict[str, int]] = {}
        for competitor in competitors:
            counted: set[str] = set()
            for keyword in competitor.keywords:
                term = keyword.keyword.strip().lower()
                if not term:
                    continue
                stats = seen.setdefault(term, {"count": 0, "volume": 0, "difficulty": 0})
                if term not in counted:
                    stats["count"] += 1
                    counted.add(term)
                stats["volume"] = max(stats["volume"], keyword.volume)
                stats["difficulty"] = max(stats["difficulty"], keyword.difficulty)

        target_terms = target.keyword_terms()
        candidates = [
            (term, stats)
            for term, stats in seen.items()
            if stats["count"] >= MIN_KEYWORD_COMPETITORS and term not in target_terms
        ]
        # Stable sort keeps first-seen order on ties
        candidates.sort(key=lambda item: item[1]["count"], reverse=True)

        return [
            Keyword(
                keyword=term,
                count=stats["count"],
                density=0.0,
                volume=stats["volume"],
                difficulty=stats["difficulty"],
                in_title=False,
                in_headings=False,
            )
            for term, stats in candidates[:MAX_KEYWORD_GAPS]
        ]
