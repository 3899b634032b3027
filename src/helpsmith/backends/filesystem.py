"""FilesystemBackend: Read and write project files directly from disk."""

from __future__ import annotations

import os
from pathlib import Path

from helpsmith.backends.async_base import AsyncBackend
from helpsmith.backends.protocol import (
    ReadResult,
    WriteResult,
    is_skipped_entry,
    matches_extension,
)
from helpsmith.logging import get_logger

logger = get_logger(__name__)


class FilesystemBackend(AsyncBackend):
    """Backend rooted at a project directory.

    Paths are always interpreted relative to the root; attempts to escape it are rejected.
    """

    def __init__(self, root_dir: str | Path, max_file_size_mb: int = 10) -> None:
        """Initialize filesystem backend.

        Args:
            root_dir: Project root directory.
            max_file_size_mb: Maximum file size to read (MB).
        """
        self.root = Path(root_dir).resolve()
        self.max_file_size_bytes = max_file_size_mb * 1024 * 1024

    def _resolve_path(self, key: str | None) -> Path:
        """Resolve a project-relative path with security checks."""
        if not key:
            return self.root
        vpath = key.replace("\\", "/")
        if vpath.startswith("~") or ".." in vpath.split("/"):
            raise ValueError("Path traversal not allowed")
        full = (self.root / vpath.lstrip("/")).resolve()
        try:
            full.relative_to(self.root)
        except ValueError:
            raise ValueError(f"Path {full} outside root directory {self.root}") from None
        return full

    def read_text_file(self, file_path: str) -> ReadResult:
        try:
            resolved_path = self._resolve_path(file_path)
        except ValueError as e:
            return ReadResult(error=str(e))

        if not resolved_path.exists() or not resolved_path.is_file():
            return ReadResult(error=f"File '{file_path}' not found")

        try:
            if resolved_path.stat().st_size > self.max_file_size_bytes:
                return ReadResult(error=f"File '{file_path}' exceeds the size limit")
            fd = os.open(resolved_path, os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0))
            with os.fdopen(fd, "r", encoding="utf-8", errors="replace") as f:
                return ReadResult(content=f.read())
        except OSError as e:
            return ReadResult(error=f"Error reading file '{file_path}': {e}")

    def write_text_file(self, file_path: str, content: str) -> WriteResult:
        try:
            resolved_path = self._resolve_path(file_path)
        except ValueError as e:
            return WriteResult(error=str(e))

        try:
            resolved_path.parent.mkdir(parents=True, exist_ok=True)
            flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
            if hasattr(os, "O_NOFOLLOW"):
                flags |= os.O_NOFOLLOW
            fd = os.open(resolved_path, flags, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            return WriteResult(path=file_path)
        except (OSError, UnicodeEncodeError) as e:
            return WriteResult(error=f"Error writing file '{file_path}': {e}")

    def file_exists(self, file_path: str) -> bool:
        try:
            return self._resolve_path(file_path).is_file()
        except (ValueError, OSError):
            return False

    def list_files(self, dir_path: str | None = None, extension: str | None = None) -> list[str]:
        try:
            base = self._resolve_path(dir_path)
        except ValueError:
            return []
        if not base.is_dir():
            return []

        names: list[str] = []
        try:
            for child in base.iterdir():
                if child.is_file() and matches_extension(child.name, [extension] if extension else None):
                    names.append(child.name)
        except OSError as e:
            logger.warning("Cannot list %s: %s", base, e)
        return sorted(names)

    def list_files_recursive(
        self,
        dir_path: str | None = None,
        extensions: list[str] | None = None,
    ) -> list[str]:
        try:
            base = self._resolve_path(dir_path)
        except ValueError:
            return []
        if not base.is_dir():
            return []

        results: list[str] = []
        prefix = (dir_path or "").replace("\\", "/").strip("/")
        for current, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if not is_skipped_entry(d))
            rel_dir = Path(current).relative_to(base).as_posix()
            for name in sorted(filenames):
                if name.startswith(".") or not matches_extension(name, extensions):
                    continue
                parts = [p for p in (prefix, "" if rel_dir == "." else rel_dir, name) if p]
                results.append("/".join(parts))
        return results

    def delete_file(self, file_path: str) -> WriteResult:
        try:
            resolved_path = self._resolve_path(file_path)
        except ValueError as e:
            return WriteResult(error=str(e))

        if not resolved_path.is_file():
            return WriteResult(error=f"File '{file_path}' not found")
        try:
            resolved_path.unlink()
            return WriteResult(path=file_path)
        except OSError as e:
            return WriteResult(error=f"Error deleting file '{file_path}': {e}")
