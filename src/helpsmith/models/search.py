"""Search-related models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SearchDocument(BaseModel):
    """One indexed page; `id` is the id of the TOC node that owns the page."""

    id: str
    title: str
    url: str
    content: str = ""


class SearchHit(BaseModel):
    """A ranked search result. Lower `priority` ranks higher."""

    id: str
    title: str
    url: str
    snippet: str = ""
    priority: int = Field(default=0, ge=0)
    in_title: bool = False
    in_content: bool = False
