"""Text metrics for competitor and target content.

Computes objective, reproducible metrics from plain text and optional markup:
- Word count (whitespace tokens)
- Flesch Reading Ease with a heuristic syllable counter, clamped to [0, 100]
- Frequency-based keyword extraction with stop-word filtering
- Heading/image/link/paragraph counts from simple tag matching
- Qualitative strengths derived from fixed thresholds

Keyword volume and difficulty come from an injectable estimator. The
default estimator returns random placeholder values; they are not real
search data and must not be presented as such.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Add timing logs for operations >1 second
"""

import random
import re
import time
from collections import Counter
from collections.abc import Callable

from competitive_analysis.core.logging import get_logger
from competitive_analysis.schemas.content_analysis import (
    ContentMetrics,
    Keyword,
    MetricsResult,
)

logger = get_logger(__name__)

# Threshold for logging slow operations (in milliseconds)
SLOW_OPERATION_THRESHOLD_MS = 1000

KEYWORD_CANDIDATES = 20
KEYWORDS_RETURNED = 10
MIN_KEYWORD_LENGTH = 4

NO_CONTENT_STRENGTH = "No content available for analysis"
BASIC_STRENGTH = "Basic content structure"

# Common function words; tokens under MIN_KEYWORD_LENGTH are dropped anyway
STOP_WORDS: frozenset[str] = frozenset(
    {
        "about",
        "above",
        "after",
        "again",
        "also",
        "because",
        "been",
        "before",
        "being",
        "below",
        "between",
        "both",
        "could",
        "does",
        "doing",
        "down",
        "during",
        "each",
        "from",
        "further",
        "have",
        "having",
        "here",
        "into",
        "just",
        "more",
        "most",
        "only",
        "other",
        "over",
        "same",
        "should",
        "some",
        "such",
        "than",
        "that",
        "their",
        "them",
        "then",
        "there",
        "these",
        "they",
        "this",
        "those",
        "through",
        "very",
        "were",
        "what",
        "when",
        "where",
        "which",
        "while",
        "will",
        "with",
        "would",
        "your",
    }
)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_NON_ALPHA_RE = re.compile(r"[^a-z]")
_NON_WORD_RE = re.compile(r"[^\w\s]")
_SILENT_E_RE = re.compile(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$")
_LEADING_Y_RE = re.compile(r"^y")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")

_HEADING_TAG_RE = re.compile(r"<h[1-6][^>]*>", re.IGNORECASE)
_IMAGE_TAG_RE = re.compile(r"<img[^>]*>", re.IGNORECASE)
_LINK_TAG_RE = re.compile(r"<a\s[^>]*>", re.IGNORECASE)
_PARAGRAPH_TAG_RE = re.compile(r"<p(?:\s[^>]*)?>", re.IGNORECASE)
_TITLE_TEXT_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_HEADING_TEXT_RE = re.compile(r"<h([1-6])[^>]*>(.*?)</h\1>", re.IGNORECASE | re.DOTALL)
_ANY_TAG_RE = re.compile(r"<[^>]+>")

# (volume, difficulty) for a keyword
KeywordEstimator = Callable[[str], tuple[int, int]]


def random_keyword_estimate(keyword: str) -> tuple[int, int]:
    """Placeholder volume/difficulty estimate.

    Returns random values in a plausible range. Not real keyword data.
    """
    return random.randint(100, 5000), random.randint(10, 90)


def count_words(text: str) -> int:
    """Count whitespace-delimited non-empty tokens."""
    return len(text.split())


def count_sentences(text: str) -> int:
    """Approximate sentence count by splitting on terminal punctuation."""
    return sum(1 for piece in _SENTENCE_SPLIT_RE.split(text) if piece.strip())


def count_syllables(word: str) -> int:
    """Heuristic English syllable count for a single word.

    Words of three letters or fewer count as one syllable. Longer words
    drop a trailing silent-e ending and a leading 'y', then count vowel
    groups, with a minimum of one.
    """
    cleaned = _NON_ALPHA_RE.sub("", word.lower())
    if len(cleaned) <= 3:
        return 1
    cleaned = _SILENT_E_RE.sub("", cleaned)
    cleaned = _LEADING_Y_RE.sub("", cleaned)
    groups = _VOWEL_GROUP_RE.findall(cleaned)
    return len(groups) or 1


def readability_score(text: str) -> float:
    """Flesch Reading Ease for text, clamped to [0, 100] and rounded to 2 places.

    Returns 0.0 when there are no sentences or no words.
    """
    words = text.split()
    sentence_count = count_sentences(text)
    if sentence_count == 0 or not words:
        return 0.0

    word_count = len(words)
    syllable_count = sum(count_syllables(word) for word in words)
    score = (
        206.835
        - 1.015 * (word_count / sentence_count)
        - 84.6 * (syllable_count / word_count)
    )
    return round(min(100.0, max(0.0, score)), 2)


def _markup_text(pattern: re.Pattern[str], html: str, group: int) -> str:
    """Concatenate the tag-stripped, lowercased text of every match."""
    parts = [_ANY_TAG_RE.sub(" ", match.group(group)) for match in pattern.finditer(html)]
    return " ".join(parts).lower()


def extract_keywords(
    text: str,
    word_count: int,
    html: str | None = None,
    estimator: KeywordEstimator | None = None,
) -> list[Keyword]:
    """Extract the most frequent non-stop-word tokens from text.

    Ties in frequency keep first-seen order.
    """
    if word_count <= 0:
        return []

    estimate = estimator or random_keyword_estimate
    tokens = _NON_WORD_RE.sub("", text.lower()).split()
    counts = Counter(
        token
        for token in tokens
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOP_WORDS
    )
    candidates = counts.most_common(KEYWORD_CANDIDATES)

    title_text = _markup_text(_TITLE_TEXT_RE, html, 1) if html else ""
    heading_text = _markup_text(_HEADING_TEXT_RE, html, 2) if html else ""

    keywords: list[Keyword] = []
    for term, count in candidates[:KEYWORDS_RETURNED]:
        volume, difficulty = estimate(term)
        keywords.append(
            Keyword(
                keyword=term,
                count=count,
                density=round(count / word_count * 100, 2),
                volume=volume,
                difficulty=difficulty,
                in_title=term in title_text,
                in_headings=term in heading_text,
            )
        )
    return keywords


def count_markup(html: str | None) -> dict[str, int]:
    """Count heading, image, link and paragraph tags (0 for each without markup)."""
    if not html or not html.strip():
        return {
            "heading_count": 0,
            "image_count": 0,
            "link_count": 0,
            "paragraph_count": 0,
        }
    return {
        "heading_count": len(_HEADING_TAG_RE.findall(html)),
        "image_count": len(_IMAGE_TAG_RE.findall(html)),
        "link_count": len(_LINK_TAG_RE.findall(html)),
        "paragraph_count": len(_PARAGRAPH_TAG_RE.findall(html)),
    }


def derive_strengths(metrics: ContentMetrics, keyword_count: int) -> list[str]:
    """Qualitative strengths for metrics that cross fixed thresholds."""
    strengths: list[str] = []
    if metrics.word_count > 1000:
        strengths.append(f"Comprehensive content length ({metrics.word_count} words)")
    if metrics.readability_score > 60:
        strengths.append("Good readability score")
    if metrics.heading_count > 3:
        strengths.append("Well-structured with multiple headings")
    if metrics.image_count > 2:
        strengths.append("Rich media content with multiple images")
    if metrics.link_count > 3:
        strengths.append("Good internal/external linking")
    if keyword_count > 5:
        strengths.append("Diverse keyword usage")
    return strengths or [BASIC_STRENGTH]


def compute_metrics(
    text: str | None,
    html: str | None = None,
    estimator: KeywordEstimator | None = None,
) -> MetricsResult:
    """Compute metrics, keywords and strengths for a document.

    Args:
        text: Plain body text.
        html: Optional raw markup, used for tag counts and title/heading flags.
        estimator: Optional keyword volume/difficulty estimator.

    Returns:
        MetricsResult. Empty or whitespace-only text yields zero metrics,
        no keywords and a single "no content" strength.
    """
    start_time = time.monotonic()
    text = text or ""

    if not text.strip():
        return MetricsResult(
            metrics=ContentMetrics(),
            keywords=[],
            strengths=[NO_CONTENT_STRENGTH],
        )

    word_count = count_words(text)
    keywords = extract_keywords(text, word_count, html=html, estimator=estimator)
    keyword_density = (
        round(sum(k.density for k in keywords) / len(keywords), 2) if keywords else 0.0
    )

    metrics = ContentMetrics(
        word_count=word_count,
        readability_score=readability_score(text),
        keyword_density=keyword_density,
        **count_markup(html),
    )
    strengths = derive_strengths(metrics, len(keywords))

    duration_ms = (time.monotonic() - start_time) * 1000
    log_extra = {
        "word_count": word_count,
        "keyword_count": len(keywords),
        "has_html": bool(html),
        "duration_ms": round(duration_ms, 2),
    }
    if duration_ms > SLOW_OPERATION_THRESHOLD_MS:
        logger.warning("Slow metrics computation", extra=log_extra)
    else:
        logger.debug("Computed content metrics", extra=log_extra)

    return MetricsResult(metrics=metrics, keywords=keywords, strengths=strengths)
