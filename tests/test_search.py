"""Tests for page text extraction and the search index."""

from __future__ import annotations

import asyncio
import json

from conftest import TOC_HTML, page

from helpsmith.backends.memory import InMemoryBackend
from helpsmith.config import Settings
from helpsmith.models.toc import TocDocument, TocNode
from helpsmith.search.index import CACHE_VERSION, IndexState, SearchIndex
from helpsmith.search.text import (
    STEM_ENDINGS,
    extract_text,
    levenshtein,
    make_snippet,
    pattern_to_regex,
    stem,
    tokenize,
)
from helpsmith.toc.codec import parse_html


def _ranking_project() -> tuple[InMemoryBackend, TocDocument]:
    backend = InMemoryBackend(
        {
            "a.htm": page("Install guide", "<p>Run the setup.</p>"),
            "b.htm": page("How to install", "<p>Follow the steps.</p>"),
            "c.htm": page("Overview", "<p>You can install the product later.</p>"),
            "d.htm": page("Licensing", "<p>Nothing relevant.</p>"),
        }
    )
    doc = TocDocument(
        elements=[
            TocNode(id="3", url="c.htm", text="Overview"),
            TocNode(id="2", url="b.htm", text="How to install"),
            TocNode(id="1", url="a.htm", text="Install guide"),
            TocNode(id="4", url="d.htm", text="Licensing"),
        ]
    )
    return backend, doc


def _built(backend: InMemoryBackend, doc: TocDocument, settings: Settings | None = None) -> SearchIndex:
    index = SearchIndex(backend, settings)
    assert asyncio.run(index.build_index(doc)) is True
    return index


def test_extract_text_skips_navigation_chrome() -> None:
    """It should keep content text and drop headers, scripts and TOC links."""
    markup = (
        "<html><head><title>T</title><script>var x = 1;</script></head><body>"
        '<div id="idheader"><h1>Header</h1></div>'
        '<p><a href="hmcontent.htm">Click to Display Table of Contents</a></p>'
        '<div id="innerdiv"><p>Real   content</p><style>p {}</style></div>'
        "</body></html>"
    )
    assert extract_text(markup) == "Real content"


def test_extract_text_falls_back_to_body() -> None:
    """It should use the body when no content container exists."""
    assert extract_text("<html><head><title>T</title></head><body><p>Plain body</p></body></html>") == "Plain body"


def test_tokenize_and_stem() -> None:
    """It should split words, drop short tokens and strip common endings."""
    assert tokenize("Hello, world_x a 42!") == ["hello", "world", "42"]
    assert stem("книгами") == "книг"
    assert stem("walking", "en") == "walk"
    assert stem("дом") == "дом"
    assert stem("книг") == "книг"
    assert stem("walk", "en") == "walk"


def test_levenshtein() -> None:
    """It should count single-character edits."""
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("same", "same") == 0


def test_wildcard_pattern() -> None:
    """It should translate * and ? and escape everything else."""
    regex = pattern_to_regex("inst*tion")
    assert regex.search("Installation")
    assert pattern_to_regex("a?c").search("xABCx")
    assert not pattern_to_regex("a.c").search("abc")


def test_make_snippet_marks_match() -> None:
    """It should cut a window around the match and highlight it."""
    text = "word " * 60 + "needle here " + "tail " * 60
    snippet = make_snippet(text, "needle", 60)
    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert "<mark>needle</mark>" in snippet
    assert make_snippet("short <b>", "zzz", 150) == "short &lt;b&gt;"


def test_search_ranks_title_prefix_then_title_then_content() -> None:
    """It should order hits by where the query matched."""
    backend, doc = _ranking_project()
    index = _built(backend, doc)
    hits = index.search("install")
    assert [h.id for h in hits] == ["1", "2", "3"]
    assert [h.priority for h in hits] == [0, 1, 2]
    assert hits[2].in_content and not hits[2].in_title
    assert "<mark>install</mark>" in hits[2].snippet


def test_search_content_mode_keeps_content_hits() -> None:
    """It should only keep pages whose text matched in content mode."""
    backend, doc = _ranking_project()
    index = _built(backend, doc)
    assert [h.id for h in index.search("install", mode="content")] == ["3"]


def test_wildcard_search() -> None:
    """It should match wildcard queries against titles before content."""
    backend = InMemoryBackend(
        {
            "a.htm": page("Installation", "<p>Steps.</p>"),
            "b.htm": page("Notes", "<p>See the documentation.</p>"),
        }
    )
    doc = TocDocument(
        elements=[TocNode(id="2", url="b.htm", text="Notes"), TocNode(id="1", url="a.htm", text="Installation")]
    )
    index = _built(backend, doc)
    assert [h.id for h in index.search("inst*tion")] == ["1"]
    hits = index.search("*tion")
    assert [(h.id, h.priority) for h in hits] == [("1", 0), ("2", 1)]


def test_search_requires_ready_index_and_minimum_length() -> None:
    """It should return nothing before indexing and for too-short queries."""
    backend, doc = _ranking_project()
    index = SearchIndex(backend)
    assert index.search("install") == []
    asyncio.run(index.build_index(doc))
    assert index.search("i") == []
    assert index.search("") == []


def test_search_respects_result_limit() -> None:
    """It should cap the number of hits."""
    backend, doc = _ranking_project()
    index = _built(backend, doc, Settings(search_max_results=2))
    assert len(index.search("install")) == 2


def test_unreadable_pages_are_skipped() -> None:
    """It should index what it can and skip missing pages."""
    backend, doc = _ranking_project()
    doc.elements.append(TocNode(id="9", url="missing.htm", text="Missing"))
    index = _built(backend, doc)
    assert "9" not in index.documents
    assert len(index.documents) == 4


def test_update_and_remove_keep_postings_consistent() -> None:
    """It should replace a page's postings on update and drop them on removal."""
    backend, doc = _ranking_project()
    index = _built(backend, doc)
    assert "1" in index.inverted_index["setup"]

    backend.write_text_file("a.htm", page("Install guide", "<p>Completely rewritten.</p>"))
    assert asyncio.run(index.update_document(doc, "1")) is True
    assert "setup" not in index.inverted_index
    assert "1" in index.inverted_index["rewritten"]

    assert asyncio.run(index.remove_document("1")) is True
    assert "1" not in index.documents
    assert all("1" not in ids for ids in index.inverted_index.values())
    assert "rewritten" not in index.inverted_index
    assert asyncio.run(index.remove_document("1")) is False


def test_concurrent_rebuild_is_rejected() -> None:
    """It should refuse a second rebuild while one is running."""
    backend, doc = _ranking_project()
    index = SearchIndex(backend)

    async def _run() -> tuple[bool, bool]:
        first = asyncio.create_task(index.build_index(doc))
        await asyncio.sleep(0)
        second = await index.build_index(doc)
        return await first, second

    first, second = asyncio.run(_run())
    assert first is True
    assert second is False
    assert index.state is IndexState.READY


def test_cache_round_trip() -> None:
    """It should restore the same index from the cache file."""
    backend, doc = _ranking_project()
    index = _built(backend, doc)
    cached = json.loads(backend.files[".helpsmith_cache.json"])
    assert cached["version"] == CACHE_VERSION

    restored = SearchIndex(backend)
    assert asyncio.run(restored.load_or_build(doc)) is True
    assert restored.is_ready
    assert restored.documents == index.documents
    assert restored.inverted_index == index.inverted_index


def test_cache_with_other_version_is_ignored() -> None:
    """It should leave the index untouched for stale or malformed caches."""
    backend, doc = _ranking_project()
    index = SearchIndex(backend)
    assert index.from_cache({"version": CACHE_VERSION - 1, "documents": [], "invertedIndex": []}) is False
    assert index.from_cache({"version": CACHE_VERSION, "documents": [["1", {"id": "1"}]]}) is False
    assert index.from_cache("garbage") is False
    assert index.state is IndexState.EMPTY

    backend.write_text_file(".helpsmith_cache.json", "{not json")
    assert asyncio.run(index.load_or_build(doc)) is False
    assert index.is_ready


def test_search_stems_matches_inflections_and_typos() -> None:
    """It should find documents through word stems and tolerate small typos."""
    backend = InMemoryBackend(
        {
            "a.htm": page("Книги", "<p>Работа с книгами и журналами.</p>"),
            "b.htm": page("Журналы", "<p>Список журналов.</p>"),
        }
    )
    doc = TocDocument(
        elements=[TocNode(id="1", url="a.htm", text="Книги"), TocNode(id="2", url="b.htm", text="Журналы")]
    )
    index = _built(backend, doc)

    hits = index.search_stems("книгами")
    assert [h.id for h in hits] == ["1"]
    assert hits[0].in_title

    assert [h.id for h in index.search_stems("кнаги", fuzzy=False)] == []
    assert [h.id for h in index.search_stems("кнагами")] == ["1"]


def test_index_data_truncates_content() -> None:
    """It should cut page text for the client-side payload."""
    backend, doc = _ranking_project()
    index = _built(backend, doc)
    data = index.index_data(5)
    assert {d["id"] for d in data} == {"1", "2", "3", "4"}
    assert all(len(d["content"]) <= 5 for d in data)


def test_index_builds_from_parsed_toc(backend: InMemoryBackend) -> None:
    """It should index every TOC page of a parsed project."""
    index = _built(backend, parse_html(TOC_HTML))
    assert set(index.documents) == {"1", "2", "3", "4"}
    assert index.documents["3"].content == "Configure the database connection."


def test_wildcard_does_not_match_prefix_only() -> None:
    """It should require the whole pattern to match."""
    regex = pattern_to_regex("inst*tion")
    assert regex.search("instantiation")
    assert not regex.search("install")


def test_title_hit_ranks_above_content_hit() -> None:
    """It should rank a title match over a content-only match."""
    backend = InMemoryBackend(
        {
            "o.htm": page("Overview", "<p>See the installation steps.</p>"),
            "g.htm": page("Installation Guide", "<p>Read this first.</p>"),
        }
    )
    doc = TocDocument(
        elements=[
            TocNode(id="1", url="o.htm", text="Overview"),
            TocNode(id="2", url="g.htm", text="Installation Guide"),
        ]
    )
    index = _built(backend, doc)
    assert [h.id for h in index.search("install")] == ["2", "1"]


def test_stemming_is_idempotent_for_every_ending() -> None:
    """It should return a stem unchanged when it is stemmed again."""
    bases = {"ru": ["слов", "книг", "дом", "работ", "ст"], "en": ["class", "walk", "nation", "go", "free"]}
    words = ["словами", "книгами", "настройки", "журналов", "classes", "walkings", "nationalities", "freely"]
    for language, endings in STEM_ENDINGS.items():
        candidates = list(words)
        for base in bases[language]:
            candidates.extend(base + ending for ending in endings)
            candidates.extend(base + a + b for a in endings for b in endings[-4:])
        for word in candidates:
            once = stem(word, language)
            assert stem(once, language) == once, (language, word, once)
            assert len(once) >= 2 or once == word


def test_update_during_rebuild_applies_after_it() -> None:
    """It should hold a page update until the running rebuild finishes, then apply it on top."""
    backend, doc = _ranking_project()
    index = SearchIndex(backend)

    async def _run() -> tuple[bool, bool, bool]:
        rebuild = asyncio.create_task(index.build_index(doc))
        await asyncio.sleep(0)
        assert index.is_indexing

        backend.write_text_file("a.htm", page("Install guide", "<p>Completely rewritten.</p>"))
        update = asyncio.create_task(index.update_document(doc, "1"))
        await asyncio.sleep(0)
        waited = not update.done()
        return await rebuild, await update, waited

    rebuilt, updated, waited = asyncio.run(_run())
    assert rebuilt and updated and waited
    assert index.state is IndexState.READY
    assert "1" in index.inverted_index["rewritten"]
    assert "setup" not in index.inverted_index
    assert "rewritten" in index.documents["1"].content
