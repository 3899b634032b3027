"""Orphan scan models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PageInfo(BaseModel):
    """Metadata extracted from a content page."""

    title: str
    images: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)


class OrphanPage(PageInfo):
    """A page on disk that no TOC node references."""

    filename: str


class ScanResult(BaseModel):
    """Result of one full orphan scan."""

    orphan_pages: list[OrphanPage] = Field(default_factory=list)
    unused_images: list[str] = Field(default_factory=list)
