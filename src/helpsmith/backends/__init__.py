"""Storage backends for project files."""

from __future__ import annotations

from helpsmith.backends.async_base import AsyncBackend, AsyncBackendMixin
from helpsmith.backends.filesystem import FilesystemBackend
from helpsmith.backends.memory import InMemoryBackend
from helpsmith.backends.protocol import BackendProtocol, ReadResult, WriteResult

__all__ = [
    "AsyncBackend",
    "AsyncBackendMixin",
    "BackendProtocol",
    "FilesystemBackend",
    "InMemoryBackend",
    "ReadResult",
    "WriteResult",
]
