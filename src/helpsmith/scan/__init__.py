"""Project scans for orphan pages and unused images."""

from __future__ import annotations

from helpsmith.scan.orphans import (
    collect_referenced_urls,
    detect_orphan_pages,
    detect_unused_images,
    extract_page_info,
    normalize_url,
    scan_project,
)

__all__ = [
    "collect_referenced_urls",
    "detect_orphan_pages",
    "detect_unused_images",
    "extract_page_info",
    "normalize_url",
    "scan_project",
]
