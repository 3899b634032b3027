"""Derived build artifacts for the WebHelp output.

Every generator is a pure function of the tree (and, for the search payload, a snapshot of the
search index). `generate_all` returns file name -> content for the publish step.
"""

from __future__ import annotations

import json
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from lxml import etree

from helpsmith.config import Settings
from helpsmith.logging import get_logger
from helpsmith.models.toc import TocDocument, TocNode
from helpsmith.search.index import SearchIndex
from helpsmith.toc.codec import generate_html
from helpsmith.toc.tree import iter_nodes

logger = get_logger(__name__)

HELP_CODES_XML = "helpCodes.xml"
HELP_CODES_JS = "helpCodes.js"
TOC_JS = "toc.js"
SEARCH_INDEX_JS = "search_index.js"

_EXTENSION_RE = re.compile(r"\.[^./\\]*$")
_UNSAFE_CODE_RE = re.compile(r"[^A-Za-z0-9_]")


@dataclass
class BuildReport:
    """Generated files plus anything the author should look at."""

    files: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def strip_extension(url: str) -> str:
    return _EXTENSION_RE.sub("", url)


def help_code(url: str) -> str:
    """Context-help code of a page: file name without extension, non-word characters as `_`."""

    return _UNSAFE_CODE_RE.sub("_", strip_extension(url))


def collect_help_codes(document: TocDocument) -> list[tuple[str, str]]:
    """`(code, topic url)` for every node with a page, in document order."""

    return [(help_code(node.url), node.url) for node in iter_nodes(document.elements) if node.url]


def find_code_collisions(codes: list[tuple[str, str]]) -> dict[str, list[str]]:
    """Codes shared by more than one node, with the topics that produce them."""

    topics: dict[str, list[str]] = defaultdict(list)
    for code, topic in codes:
        topics[code].append(topic)
    return {code: urls for code, urls in topics.items() if len(urls) > 1}


def collision_warnings(document: TocDocument) -> list[str]:
    warnings = []
    for code, topics in find_code_collisions(collect_help_codes(document)).items():
        message = f"Help code '{code}' is shared by: {', '.join(topics)}"
        logger.warning("%s", message)
        warnings.append(message)
    return warnings


def generate_help_codes_xml(document: TocDocument) -> str:
    """`helpCodes.xml` used by host applications for context help.

    Colliding codes are still emitted; see `collision_warnings`.
    """

    root = etree.Element("HelpCodes")
    for code, topic in collect_help_codes(document):
        etree.SubElement(root, "HelpCode", code=code, topic=topic)
    body = etree.tostring(root, pretty_print=True, encoding="unicode")
    return '<?xml version="1.0" encoding="utf-8"?>\n' + body.rstrip("\n")


def generate_help_codes_js(document: TocDocument) -> str:
    """`helpCodes.js`: the page names (without extension) known to the viewer."""

    names = [strip_extension(node.url) for node in iter_nodes(document.elements) if node.url]
    body = ",\n".join(json.dumps(name, ensure_ascii=False) for name in names)
    return f"window.helpCodes = {{ data: [\n{body}\n] }};"


def build_toc_tree(elements: list[TocNode], prefix: str = "") -> dict[str, Any]:
    """Tree keyed by dotted position (`"1"`, `"1.2"`) instead of node id."""

    result: dict[str, Any] = {}
    level = len([p for p in prefix.split(".") if p]) + 1
    for index, node in enumerate(elements, start=1):
        key = f"{prefix}.{index}" if prefix else str(index)
        result[key] = {
            "level": level,
            "url": node.url or "",
            "text": node.text or "",
            "child": {"id": f"ul{key}", "elements": build_toc_tree(node.children, key)}
            if node.children
            else None,
        }
    return result


def _toc_payload(document: TocDocument) -> dict[str, Any]:
    return {"id": "toc", "elements": build_toc_tree(document.elements)}


def _compact_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def generate_toc_js(document: TocDocument) -> str:
    """`toc.js` with the positional tree as `window.TOC`."""

    return f"window.TOC={_compact_json(_toc_payload(document))};"


def generate_search_index(
    document: TocDocument | None,
    index: SearchIndex | None,
    max_chars: int = 15000,
) -> str:
    """`search_index.js` for the client-side search (`window.__SEARCH_DATA__`).

    Contains the indexed pages (text truncated to `max_chars`), the positional tree for
    breadcrumbs and a lowercased url -> title map.
    """

    entries: list[dict[str, str]] = []
    if index is not None and index.is_ready:
        entries = index.index_data(max_chars)
    else:
        logger.warning("Search index not ready; search payload will have no entries")

    titles = {e["url"].lower(): e["title"] for e in entries if e["url"] and e["title"]}
    payload = {
        "entries": entries,
        "toc": _toc_payload(document) if document is not None else None,
        "titles": titles,
    }
    return f"window.__SEARCH_DATA__={_compact_json(payload)};"


def generate_all(
    document: TocDocument,
    index: SearchIndex | None = None,
    settings: Settings | None = None,
) -> BuildReport:
    """Every derived artifact of a build, keyed by output file name."""

    settings = settings or Settings()
    report = BuildReport(warnings=collision_warnings(document))
    report.files = {
        HELP_CODES_XML: generate_help_codes_xml(document),
        HELP_CODES_JS: generate_help_codes_js(document),
        TOC_JS: generate_toc_js(document),
        settings.toc_filename: generate_html(document, frame_name=settings.frame_name),
        SEARCH_INDEX_JS: generate_search_index(document, index, settings.search_payload_max_chars),
    }
    if index is None or not index.is_ready:
        report.warnings.append("Search index was not ready; the search payload is empty")
    return report
