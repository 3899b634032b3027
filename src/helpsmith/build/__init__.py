"""Build artifact generation."""

from __future__ import annotations

from helpsmith.build.generators import BuildReport, generate_all, help_code

__all__ = ["BuildReport", "generate_all", "help_code"]
