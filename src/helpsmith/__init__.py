"""helpsmith: table-of-contents editing, search and builds for HTML help projects."""

from __future__ import annotations

from helpsmith.session import ProjectSession

__all__ = ["ProjectSession"]

__version__ = "0.1.0"
