"""Async access to project backends.

File operations are the suspension points of the editor: the index build and the orphan scan
await each read, so other work can interleave between files.
"""

from __future__ import annotations

import asyncio

from helpsmith.backends.protocol import BackendProtocol, ReadResult, WriteResult


class AsyncBackendMixin:
    """Mixin that offers awaitable versions of the synchronous backend methods."""

    async def aread_text_file(self, file_path: str) -> ReadResult:
        return await asyncio.to_thread(self.read_text_file, file_path)  # type: ignore[attr-defined]

    async def awrite_text_file(self, file_path: str, content: str) -> WriteResult:
        return await asyncio.to_thread(self.write_text_file, file_path, content)  # type: ignore[attr-defined]

    async def afile_exists(self, file_path: str) -> bool:
        return await asyncio.to_thread(self.file_exists, file_path)  # type: ignore[attr-defined]

    async def alist_files(self, dir_path: str | None = None, extension: str | None = None) -> list[str]:
        return await asyncio.to_thread(self.list_files, dir_path, extension)  # type: ignore[attr-defined]

    async def alist_files_recursive(
        self,
        dir_path: str | None = None,
        extensions: list[str] | None = None,
    ) -> list[str]:
        return await asyncio.to_thread(self.list_files_recursive, dir_path, extensions)  # type: ignore[attr-defined]

    async def adelete_file(self, file_path: str) -> WriteResult:
        return await asyncio.to_thread(self.delete_file, file_path)  # type: ignore[attr-defined]


class AsyncBackend(AsyncBackendMixin, BackendProtocol):
    """A backend usable from both synchronous and asynchronous code."""
