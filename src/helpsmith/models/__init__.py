"""Pydantic models used across the project."""

from __future__ import annotations

from helpsmith.models.scan import OrphanPage, PageInfo, ScanResult
from helpsmith.models.search import SearchDocument, SearchHit
from helpsmith.models.toc import TocDocument, TocNode

__all__ = [
    "OrphanPage",
    "PageInfo",
    "ScanResult",
    "SearchDocument",
    "SearchHit",
    "TocDocument",
    "TocNode",
]
