"""Protocol definitions for project file access.

Every path is relative to the project root and uses `/` as the separator. Failures are
reported through result objects; backends never raise for I/O errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


# Dependency-manager directories skipped by recursive listings, together with hidden entries.
SKIPPED_DIRECTORIES = frozenset({"node_modules", "bower_components", "__pycache__"})


@dataclass
class ReadResult:
    """Result from read operations."""

    content: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.content is not None


@dataclass
class WriteResult:
    """Result from write and delete operations."""

    error: str | None = None
    path: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class BackendProtocol(ABC):
    """Protocol for pluggable project storage backends."""

    @abstractmethod
    def read_text_file(self, file_path: str) -> ReadResult:
        """Read a UTF-8 text file."""

    @abstractmethod
    def write_text_file(self, file_path: str, content: str) -> WriteResult:
        """Create or overwrite a UTF-8 text file, creating parent directories."""

    @abstractmethod
    def file_exists(self, file_path: str) -> bool:
        """Return True when `file_path` is an existing regular file."""

    @abstractmethod
    def list_files(self, dir_path: str | None = None, extension: str | None = None) -> list[str]:
        """List file names directly inside `dir_path` (project root when None)."""

    @abstractmethod
    def list_files_recursive(
        self,
        dir_path: str | None = None,
        extensions: list[str] | None = None,
    ) -> list[str]:
        """List project-relative file paths below `dir_path`.

        Hidden entries and dependency-manager directories are skipped.
        """

    @abstractmethod
    def delete_file(self, file_path: str) -> WriteResult:
        """Delete a file."""


def matches_extension(name: str, extensions: list[str] | None) -> bool:
    """Case-insensitive suffix filter; no filter accepts everything."""

    if not extensions:
        return True
    lower = name.lower()
    return any(lower.endswith(ext.lower()) for ext in extensions)


def is_skipped_entry(name: str) -> bool:
    return name.startswith(".") or name in SKIPPED_DIRECTORIES
