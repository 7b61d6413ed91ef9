"""Unit tests for the content metrics engine.

Tests:
- Word, sentence and syllable counting
- Flesch Reading Ease clamping
- Keyword extraction (stop words, ordering, title/heading flags)
- Markup tag counts
- Strength thresholds
- compute_metrics() for empty and real documents
"""

import pytest

from competitive_analysis.schemas.content_analysis import ContentMetrics
from competitive_analysis.utils.text_metrics import (
    BASIC_STRENGTH,
    KEYWORDS_RETURNED,
    NO_CONTENT_STRENGTH,
    STOP_WORDS,
    compute_metrics,
    count_markup,
    count_sentences,
    count_syllables,
    count_words,
    derive_strengths,
    extract_keywords,
    random_keyword_estimate,
    readability_score,
)

PAGE_HTML = """<html><head><title>Best Trail Shoes</title></head>
<body>
<h1>Trail shoes</h1>
<h2>Grip tips</h2>
<p class="intro">Shoes with grip.</p>
<p>More text.</p>
<pre>code</pre>
<img src="a.jpg"><img src="b.jpg">
<a href="/x">x</a><abbr>y</abbr>
</body></html>"""


def fixed_estimate(keyword: str) -> tuple[int, int]:
    return 100, 20


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------


class TestCounting:
    """Test word, sentence and syllable counts."""

    def test_count_words(self) -> None:
        assert count_words("one  two\nthree\tfour") == 4
        assert count_words("   ") == 0

    def test_count_sentences(self) -> None:
        assert count_sentences("Hello world. How are you? Fine!") == 3
        assert count_sentences("No terminal punctuation") == 1
        assert count_sentences("") == 0
        assert count_sentences("...!?") == 0

    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("the", 1),
            ("cat", 1),
            ("123", 1),
            ("cake", 1),
            ("reading", 2),
            ("table", 2),
            ("runners", 2),
            ("rhythm", 1),
        ],
    )
    def test_count_syllables(self, word: str, expected: int) -> None:
        assert count_syllables(word) == expected


class TestReadability:
    """Test Flesch Reading Ease."""

    def test_no_sentences(self) -> None:
        assert readability_score("") == 0.0
        assert readability_score("...") == 0.0

    def test_clamped_high(self) -> None:
        assert readability_score("The cat sat.") == 100.0

    def test_clamped_low(self) -> None:
        assert readability_score("Internationalization.") == 0.0

    def test_mid_range(self) -> None:
        """4 words, 1 sentence, 7 syllables."""
        assert readability_score("Runners prefer lighter shoes.") == pytest.approx(
            54.72, abs=0.01
        )


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------


class TestExtractKeywords:
    """Test frequency-based keyword extraction."""

    def test_frequency_order_with_first_seen_ties(self) -> None:
        text = "Shoes shoes running. Running shoes grip."
        keywords = extract_keywords(text, 6, estimator=fixed_estimate)

        assert [k.keyword for k in keywords] == ["shoes", "running", "grip"]
        assert keywords[0].count == 3
        assert keywords[0].density == 50.0
        assert keywords[0].volume == 100
        assert keywords[0].difficulty == 20

    def test_stop_words_and_short_tokens_dropped(self) -> None:
        text = "that this with which run a an the trail"
        keywords = extract_keywords(text, 9, estimator=fixed_estimate)

        assert [k.keyword for k in keywords] == ["trail"]

    def test_limit(self) -> None:
        words = [f"word{chr(ord('a') + i)}" for i in range(15)]
        keywords = extract_keywords(" ".join(words), 15, estimator=fixed_estimate)

        assert len(keywords) == KEYWORDS_RETURNED

    def test_title_and_heading_flags(self) -> None:
        text = "shoes shoes grip grip running"
        keywords = {
            k.keyword: k
            for k in extract_keywords(text, 5, html=PAGE_HTML, estimator=fixed_estimate)
        }

        assert keywords["shoes"].in_title is True
        assert keywords["shoes"].in_headings is True
        assert keywords["grip"].in_title is False
        assert keywords["grip"].in_headings is True
        assert keywords["running"].in_title is False
        assert keywords["running"].in_headings is False

    def test_zero_word_count(self) -> None:
        assert extract_keywords("anything", 0) == []

    def test_stop_words_are_all_long(self) -> None:
        assert all(len(word) >= 4 for word in STOP_WORDS)

    def test_random_estimate_in_range(self) -> None:
        for _ in range(20):
            volume, difficulty = random_keyword_estimate("shoes")
            assert 100 <= volume <= 5000
            assert 10 <= difficulty <= 90


# ---------------------------------------------------------------------------
# Markup and strengths
# ---------------------------------------------------------------------------


class TestCountMarkup:
    """Test tag counting."""

    def test_counts_tags(self) -> None:
        assert count_markup(PAGE_HTML) == {
            "heading_count": 2,
            "image_count": 2,
            "link_count": 1,
            "paragraph_count": 2,
        }

    def test_no_markup(self) -> None:
        assert count_markup(None) == {
            "heading_count": 0,
            "image_count": 0,
            "link_count": 0,
            "paragraph_count": 0,
        }
        assert count_markup("  ")["heading_count"] == 0


class TestDeriveStrengths:
    """Test strength thresholds."""

    def test_all_strengths(self) -> None:
        metrics = ContentMetrics(
            word_count=1500,
            readability_score=70.0,
            heading_count=4,
            image_count=3,
            link_count=4,
        )
        assert derive_strengths(metrics, 6) == [
            "Comprehensive content length (1500 words)",
            "Good readability score",
            "Well-structured with multiple headings",
            "Rich media content with multiple images",
            "Good internal/external linking",
            "Diverse keyword usage",
        ]

    def test_thresholds_are_exclusive(self) -> None:
        metrics = ContentMetrics(
            word_count=1000,
            readability_score=60.0,
            heading_count=3,
            image_count=2,
            link_count=3,
        )
        assert derive_strengths(metrics, 5) == [BASIC_STRENGTH]


# ---------------------------------------------------------------------------
# compute_metrics
# ---------------------------------------------------------------------------


class TestComputeMetrics:
    """Test the full metrics pipeline."""

    @pytest.mark.parametrize("text", [None, "", "   \n\t"])
    def test_empty_text(self, text: str | None) -> None:
        result = compute_metrics(text, html=PAGE_HTML)

        assert result.metrics == ContentMetrics()
        assert result.keywords == []
        assert result.strengths == [NO_CONTENT_STRENGTH]

    def test_text_and_markup(self) -> None:
        text = "Trail shoes need grip. Grip matters on trail descents."
        result = compute_metrics(text, html=PAGE_HTML, estimator=fixed_estimate)

        assert result.metrics.word_count == 9
        assert result.metrics.heading_count == 2
        assert result.metrics.image_count == 2
        assert 0.0 <= result.metrics.readability_score <= 100.0
        assert result.keywords[0].keyword == "trail"
        expected_density = round(
            sum(k.density for k in result.keywords) / len(result.keywords), 2
        )
        assert result.metrics.keyword_density == expected_density
        assert result.strengths

    def test_text_only_has_zero_tag_counts(self) -> None:
        result = compute_metrics("Plain words only here.", estimator=fixed_estimate)

        assert result.metrics.heading_count == 0
        assert result.metrics.paragraph_count == 0

    def test_serializes_camel_case(self) -> None:
        result = compute_metrics("Plain words only here.", estimator=fixed_estimate)
        dumped = result.model_dump(by_alias=True)

        assert "wordCount" in dumped["metrics"]
        assert "inTitle" in dumped["keywords"][0]
