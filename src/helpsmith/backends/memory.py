"""InMemoryBackend: project files held in a dictionary.

Used for previews, dry-run builds and tests where touching the disk is unwanted.
"""

from __future__ import annotations

from helpsmith.backends.async_base import AsyncBackend
from helpsmith.backends.protocol import (
    ReadResult,
    WriteResult,
    is_skipped_entry,
    matches_extension,
)


def _normalize(path: str) -> str:
    key = path.replace("\\", "/")
    while key.startswith("./"):
        key = key[2:]
    return key.lstrip("/")


class InMemoryBackend(AsyncBackend):
    """Dictionary-backed project storage keyed by project-relative path."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self._files: dict[str, str] = {}
        for path, content in (files or {}).items():
            self._files[_normalize(path)] = content

    @property
    def files(self) -> dict[str, str]:
        """Snapshot of the stored files."""
        return dict(self._files)

    def read_text_file(self, file_path: str) -> ReadResult:
        key = _normalize(file_path)
        if key not in self._files:
            return ReadResult(error=f"File '{file_path}' not found")
        return ReadResult(content=self._files[key])

    def write_text_file(self, file_path: str, content: str) -> WriteResult:
        key = _normalize(file_path)
        if not key:
            return WriteResult(error="Empty path")
        self._files[key] = content
        return WriteResult(path=file_path)

    def file_exists(self, file_path: str) -> bool:
        return _normalize(file_path) in self._files

    def list_files(self, dir_path: str | None = None, extension: str | None = None) -> list[str]:
        prefix = _normalize(dir_path or "").strip("/")
        names: list[str] = []
        for key in self._files:
            if prefix:
                if not key.startswith(prefix + "/"):
                    continue
                rest = key[len(prefix) + 1 :]
            else:
                rest = key
            if "/" in rest:
                continue
            if matches_extension(rest, [extension] if extension else None):
                names.append(rest)
        return sorted(names)

    def list_files_recursive(
        self,
        dir_path: str | None = None,
        extensions: list[str] | None = None,
    ) -> list[str]:
        prefix = _normalize(dir_path or "").strip("/")
        results: list[str] = []
        for key in sorted(self._files):
            if prefix and not key.startswith(prefix + "/"):
                continue
            rest = key[len(prefix) + 1 :] if prefix else key
            if any(is_skipped_entry(part) for part in rest.split("/")):
                continue
            if matches_extension(key, extensions):
                results.append(key)
        return results

    def delete_file(self, file_path: str) -> WriteResult:
        key = _normalize(file_path)
        if self._files.pop(key, None) is None:
            return WriteResult(error=f"File '{file_path}' not found")
        return WriteResult(path=file_path)
