"""Table-of-contents models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class TocNode(BaseModel):
    """One entry of the table of contents.

    `url` may be empty for a pure folder heading. Levels and numbering are not stored: they are
    derived from the node's position when the tree is serialized.
    """

    id: str
    url: str
    text: str
    children: list["TocNode"] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("node id must not be empty")
        return value

    @property
    def is_folder(self) -> bool:
        return bool(self.children)


class TocDocument(BaseModel):
    """The whole tree plus the TOC HTML it was parsed from.

    `original_html` is provenance only: the serializer reads the page title from it.
    """

    elements: list[TocNode] = Field(default_factory=list)
    original_html: str = ""

    @model_validator(mode="after")
    def _ids_unique(self) -> "TocDocument":
        seen: set[str] = set()
        stack = list(self.elements)
        while stack:
            node = stack.pop()
            if node.id in seen:
                raise ValueError(f"duplicate node id '{node.id}'")
            seen.add(node.id)
            stack.extend(node.children)
        return self

    def structure(self) -> list[dict[str, Any]]:
        """Plain nested dicts of the logical tree (ids, urls, texts, children)."""

        return [node.model_dump() for node in self.elements]
