"""Utility modules for the application.

This package contains shared utility functions and classes.
"""

from competitive_analysis.utils.text_metrics import (
    KeywordEstimator,
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
from competitive_analysis.utils.url import (
    MAX_URL_LENGTH,
    URLNormalizationOptions,
    URLNormalizer,
    escape_like,
    extract_hostname,
    extract_path,
    normalize_url,
    path_similarity,
    url_fragments,
    url_variants,
)

__all__ = [
    # Text metrics
    "KeywordEstimator",
    "compute_metrics",
    "count_markup",
    "count_sentences",
    "count_syllables",
    "count_words",
    "derive_strengths",
    "extract_keywords",
    "random_keyword_estimate",
    "readability_score",
    # URL normalization
    "MAX_URL_LENGTH",
    "URLNormalizationOptions",
    "URLNormalizer",
    "escape_like",
    "extract_hostname",
    "extract_path",
    "normalize_url",
    "path_similarity",
    "url_fragments",
    "url_variants",
]
