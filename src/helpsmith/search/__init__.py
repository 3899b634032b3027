"""Full-text search over help pages."""

from __future__ import annotations

from helpsmith.search.index import CACHE_VERSION, IndexState, SearchIndex
from helpsmith.search.text import extract_text, make_snippet, pattern_to_regex, stem, tokenize

__all__ = [
    "CACHE_VERSION",
    "IndexState",
    "SearchIndex",
    "extract_text",
    "make_snippet",
    "pattern_to_regex",
    "stem",
    "tokenize",
]
