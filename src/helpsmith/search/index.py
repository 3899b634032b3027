"""Full-text search index over the pages of the table of contents.

The index keeps one `SearchDocument` per TOC node with a page, plus an inverted index from
stems to node ids. All mutations (full rebuilds and single-page updates) are serialized through
one lock; a second rebuild requested while one is running is rejected.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Literal

from pydantic import ValidationError

from helpsmith.backends.async_base import AsyncBackend
from helpsmith.config import Settings
from helpsmith.logging import get_logger, log_exception
from helpsmith.models.search import SearchDocument, SearchHit
from helpsmith.models.toc import TocDocument, TocNode
from helpsmith.search.text import (
    MIN_STEM_LENGTH,
    extract_text,
    has_wildcards,
    levenshtein,
    make_snippet,
    pattern_to_regex,
    stem,
    tokenize,
)
from helpsmith.toc.tree import find_node, iter_nodes

logger = get_logger(__name__)

CACHE_VERSION = 2

SearchMode = Literal["title", "content"]


class IndexState(str, Enum):
    """Lifecycle of the index."""

    EMPTY = "empty"
    INDEXING = "indexing"
    READY = "ready"


class SearchIndex:
    """Inverted index plus document store for one open project."""

    def __init__(self, backend: AsyncBackend, settings: Settings | None = None) -> None:
        """Initialize the index.

        Args:
            backend: Project file access used to read pages and the cache file.
            settings: Search limits and cache location.
        """
        self.backend = backend
        self.settings = settings or Settings()
        self.documents: dict[str, SearchDocument] = {}
        self.inverted_index: dict[str, set[str]] = {}
        self.state = IndexState.EMPTY
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self.state is IndexState.READY

    @property
    def is_indexing(self) -> bool:
        return self.state is IndexState.INDEXING

    def reset(self) -> None:
        """Forget every document and posting."""

        self.documents.clear()
        self.inverted_index.clear()
        self.state = IndexState.EMPTY

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def build_index(self, document: TocDocument) -> bool:
        """Re-index every page of the tree in document order.

        Pages that cannot be read are skipped. Returns False when a rebuild is already running
        or the pass failed; the index is then left not ready.
        """

        if self.is_indexing:
            logger.debug("Index rebuild already in progress; request ignored")
            return False

        self.state = IndexState.INDEXING
        async with self._lock:
            try:
                self.documents.clear()
                self.inverted_index.clear()
                total = 0
                for node in iter_nodes(document.elements):
                    if not node.url:
                        continue
                    doc = await self._load_document(node)
                    if doc is None:
                        continue
                    self._store(doc)
                    total += 1
                    if total % 20 == 0:
                        logger.debug("Indexed %d documents so far", total)
            except Exception:
                log_exception(logger, "Search index build failed")
                self.state = IndexState.EMPTY
                return False
            self.state = IndexState.READY

        logger.info("Search index ready: %d documents, %d stems", total, len(self.inverted_index))
        await self.save_cache()
        return True

    async def update_document(self, document: TocDocument, node_id: str) -> bool:
        """Re-read and re-index one page. Returns False when the page was not indexed."""

        async with self._lock:
            node = find_node(document.elements, node_id)
            if node is None or not node.url:
                return False
            doc = await self._load_document(node)
            if doc is None:
                return False
            self._remove_postings(node_id)
            self._store(doc)

        await self.save_cache()
        return True

    async def remove_document(self, node_id: str) -> bool:
        """Drop a document and all of its postings."""

        async with self._lock:
            self._remove_postings(node_id)
            removed = self.documents.pop(node_id, None) is not None

        if removed:
            await self.save_cache()
        return removed

    async def _load_document(self, node: TocNode) -> SearchDocument | None:
        result = await self.backend.aread_text_file(node.url)
        if not result.success:
            logger.warning("Skipping %s for search: %s", node.url, result.error)
            return None
        return SearchDocument(id=node.id, title=node.text, url=node.url, content=extract_text(result.content or ""))

    def _store(self, doc: SearchDocument) -> None:
        self.documents[doc.id] = doc
        self._index_text(doc.id, f"{doc.title} {doc.content}")

    def _index_text(self, doc_id: str, text: str) -> None:
        for word in tokenize(text):
            key = stem(word, self.settings.stem_language)
            if len(key) < MIN_STEM_LENGTH:
                continue
            self.inverted_index.setdefault(key, set()).add(doc_id)

    def _remove_postings(self, doc_id: str) -> None:
        for key in list(self.inverted_index):
            postings = self.inverted_index[key]
            postings.discard(doc_id)
            if not postings:
                del self.inverted_index[key]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search(self, query: str, mode: SearchMode = "title") -> list[SearchHit]:
        """Substring or wildcard search over titles and page text.

        Ranking tiers: title starts with the query, title contains it, page text contains it.
        In `content` mode only hits whose page text matched are kept.
        """

        if not self.is_ready or not query or len(query.strip()) < self.settings.search_min_query_length:
            return []

        hits = self._wildcard_search(query) if has_wildcards(query) else self._substring_search(query)
        if mode == "content":
            hits = [h for h in hits if h.in_content]
        hits.sort(key=lambda h: h.priority)
        return hits[: self.settings.search_max_results]

    def _substring_search(self, query: str) -> list[SearchHit]:
        needle = query.lower()
        hits: list[SearchHit] = []
        for doc_id, doc in self.documents.items():
            title = doc.title.lower()
            in_title = needle in title
            in_content = needle in doc.content.lower()
            if not (in_title or in_content):
                continue
            if title.startswith(needle):
                priority = 0
            elif in_title:
                priority = 1
            else:
                priority = 2
            hits.append(self._hit(doc_id, doc, query, priority, in_title, in_content))
        return hits

    def _wildcard_search(self, query: str) -> list[SearchHit]:
        regex = pattern_to_regex(query)
        hits: list[SearchHit] = []
        for doc_id, doc in self.documents.items():
            in_title = regex.search(doc.title) is not None
            in_content = regex.search(doc.content) is not None
            if in_title or in_content:
                hits.append(self._hit(doc_id, doc, query, 0 if in_title else 1, in_title, in_content))
        return hits

    def _hit(
        self,
        doc_id: str,
        doc: SearchDocument,
        query: str,
        priority: int,
        in_title: bool,
        in_content: bool,
    ) -> SearchHit:
        return SearchHit(
            id=doc_id,
            title=doc.title,
            url=doc.url,
            snippet=make_snippet(doc.content, query, self.settings.snippet_length),
            priority=priority,
            in_title=in_title,
            in_content=in_content,
        )

    def similar_stems(self, key: str, max_distance: int = 2) -> list[str]:
        """Indexed stems within `max_distance` edits of `key`."""

        similar = []
        for indexed in self.inverted_index:
            if abs(len(indexed) - len(key)) > max_distance:
                continue
            if levenshtein(key, indexed) <= max_distance:
                similar.append(indexed)
        return similar

    def search_stems(self, query: str, *, fuzzy: bool = True, max_distance: int = 2) -> list[SearchHit]:
        """Look up query words in the inverted index.

        Each query word is stemmed; if the stem is not indexed and `fuzzy` is set, stems within
        `max_distance` edits are used instead. Documents matching more query words rank higher,
        and among equals those whose title matched come first.
        """

        if not self.is_ready:
            return []

        language = self.settings.stem_language
        query_stems = [stem(w, language) for w in tokenize(query)]
        query_stems = [s for s in dict.fromkeys(query_stems) if len(s) >= MIN_STEM_LENGTH]
        if not query_stems:
            return []

        scores: dict[str, int] = {}
        title_hits: set[str] = set()
        for key in query_stems:
            candidates = [key] if key in self.inverted_index else []
            if not candidates and fuzzy:
                candidates = self.similar_stems(key, max_distance)
            matched: set[str] = set()
            for candidate in candidates:
                matched |= self.inverted_index.get(candidate, set())
            for doc_id in matched:
                scores[doc_id] = scores.get(doc_id, 0) + 1
                doc = self.documents.get(doc_id)
                if doc is not None and any(
                    stem(w, language) in candidates for w in tokenize(doc.title)
                ):
                    title_hits.add(doc_id)

        first_word = next(iter(tokenize(query)), query)
        hits = [
            self._hit(
                doc_id,
                self.documents[doc_id],
                first_word,
                0 if doc_id in title_hits else 1,
                doc_id in title_hits,
                True,
            )
            for doc_id in scores
            if doc_id in self.documents
        ]
        hits.sort(key=lambda h: (-scores[h.id], h.priority))
        return hits[: self.settings.search_max_results]

    def index_data(self, max_chars: int | None = None) -> list[dict[str, str]]:
        """Documents for the client-side search payload, page text truncated."""

        limit = max_chars if max_chars is not None else self.settings.search_payload_max_chars
        return [
            {"id": doc_id, "title": doc.title, "url": doc.url, "content": doc.content[:limit]}
            for doc_id, doc in self.documents.items()
        ]

    async def wait_until_idle(self, attempts: int | None = None, interval_s: float | None = None) -> bool:
        """Poll a running rebuild a bounded number of times.

        Returns:
            True if no rebuild is running any more; False when the wait gave up.
        """

        attempts = self.settings.index_wait_attempts if attempts is None else attempts
        interval_s = self.settings.index_wait_interval_s if interval_s is None else interval_s
        for _ in range(attempts):
            if not self.is_indexing:
                return True
            await asyncio.sleep(interval_s)
        return not self.is_indexing

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def to_cache(self) -> dict[str, Any]:
        """Versioned, JSON-serializable snapshot of documents and postings."""

        return {
            "version": CACHE_VERSION,
            "documents": [[doc_id, doc.model_dump()] for doc_id, doc in self.documents.items()],
            "invertedIndex": [[key, sorted(ids)] for key, ids in self.inverted_index.items()],
        }

    def from_cache(self, payload: Any) -> bool:
        """Restore a snapshot. Wrong versions and malformed payloads leave the index untouched."""

        if not isinstance(payload, dict) or payload.get("version") != CACHE_VERSION:
            return False
        try:
            documents = {
                str(doc_id): SearchDocument.model_validate(record)
                for doc_id, record in payload["documents"]
            }
            inverted = {str(key): {str(i) for i in ids} for key, ids in payload["invertedIndex"]}
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.info("Ignoring unusable search cache: %s", e)
            return False

        self.documents = documents
        self.inverted_index = inverted
        self.state = IndexState.READY
        return True

    async def load_cache(self) -> bool:
        """Load the cache file; a missing or stale file counts as no cache."""

        result = await self.backend.aread_text_file(self.settings.cache_filename)
        if not result.success:
            return False
        try:
            payload = json.loads(result.content or "")
        except ValueError:
            return False
        return self.from_cache(payload)

    async def save_cache(self) -> bool:
        payload = json.dumps(self.to_cache(), ensure_ascii=False)
        result = await self.backend.awrite_text_file(self.settings.cache_filename, payload)
        if not result.success:
            logger.warning("Failed to save search cache: %s", result.error)
        return result.success

    async def load_or_build(self, document: TocDocument) -> bool:
        """Use the cache when it is valid, otherwise rebuild.

        Returns:
            True when the index was restored from the cache.
        """

        if self.is_indexing:
            return False
        if await self.load_cache():
            logger.info("Search index loaded from cache: %d documents", len(self.documents))
            return True
        await self.build_index(document)
        return False
