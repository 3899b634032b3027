"""Text processing for the search index: page text extraction, tokens, stems and snippets."""

from __future__ import annotations

import html
import re

from bs4 import BeautifulSoup, Tag

_CHROME_TAGS = ["script", "style", "noscript", "nav", "header", "footer"]
_CHROME_SELECTOR = "#idheader, #printheader, #idnav, .breadcrumb, .navigation"
_CONTENT_SELECTOR = "#innerdiv, #idcontent, .content, main, article"
_TOC_LINK_MARKERS = ("Click to Display", "Table of Contents")

_NON_WORD_RE = re.compile(r"[\W_]+")
_SPACE_RE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 2
MIN_STEM_INPUT = 4
MIN_STEM_LENGTH = 2

# Inflectional endings per language. Longer endings are tried first.
_ENDINGS = {
    "ru": [
        "ами", "ями", "ого", "его", "ому", "ему", "ыми", "ими", "ать", "ять",
        "ить", "ение", "ания", "ство", "ость", "ной", "ный", "ная", "ное",
        "ых", "их", "ой", "ий", "ый", "ая", "яя", "ое", "ее", "ие",
        "ам", "ям", "ом", "ем", "ов", "ев", "ей", "ах", "ях",
        "ть", "ся", "ут", "ют", "ат", "ят", "ет", "ит",
        "а", "я", "о", "е", "и", "ы", "у", "ю",
    ],
    "en": [
        "ational", "ations", "ation", "ments", "ment", "ness", "ings", "ing",
        "ies", "ers", "est", "ed", "es", "ly", "er", "s",
    ],
}
STEM_ENDINGS: dict[str, list[str]] = {
    lang: sorted(endings, key=len, reverse=True) for lang, endings in _ENDINGS.items()
}


def extract_text(page_html: str) -> str:
    """Plain text of a help page without navigation and viewer chrome.

    When the page has a main content container only its text is used, otherwise the body.
    """

    soup = BeautifulSoup(page_html or "", "lxml")

    for tag in soup.find_all(_CHROME_TAGS):
        tag.decompose()
    for tag in soup.select(_CHROME_SELECTOR):
        tag.decompose()

    for link in soup.find_all("a"):
        if link.decomposed:
            continue
        label = link.get_text()
        if any(marker in label for marker in _TOC_LINK_MARKERS):
            container = link.find_parent("p") or link.find_parent("div") or link
            container.decompose()

    content = soup.select_one(_CONTENT_SELECTOR)
    source: Tag | BeautifulSoup = content if content is not None else (soup.body or soup)
    return _SPACE_RE.sub(" ", source.get_text(" ")).strip()


def tokenize(text: str) -> list[str]:
    """Lowercase words of at least two letters or digits."""

    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return [w for w in cleaned.split() if len(w) >= MIN_TOKEN_LENGTH]


def stem(word: str, language: str = "ru") -> str:
    """Strip known endings, longest first, until none applies.

    Words shorter than four characters are left alone and at least two characters of stem are
    kept, so stemming a stem returns it unchanged.
    """

    endings = STEM_ENDINGS.get(language, ())
    current = word
    while len(current) >= MIN_STEM_INPUT:
        for ending in endings:
            if current.endswith(ending) and len(current) - len(ending) >= MIN_STEM_LENGTH:
                current = current[: -len(ending)]
                break
        else:
            break
    return current


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""

    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(a) + 1))
    for i, cb in enumerate(b, start=1):
        current = [i]
        for j, ca in enumerate(a, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def has_wildcards(query: str) -> bool:
    return "*" in query or "?" in query


def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a `*`/`?` wildcard pattern into a case-insensitive regex."""

    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE)


def make_snippet(text: str, query: str, max_length: int = 150) -> str:
    """HTML snippet around the first match of `query`, with the match wrapped in `<mark>`.

    Wildcards are removed from the query before matching.
    """

    if not text or not query:
        return ""

    needle = query.replace("*", "").replace("?", "").lower()
    pos = text.lower().find(needle) if needle else -1
    if pos == -1:
        suffix = "..." if len(text) > max_length else ""
        return html.escape(text[:max_length], quote=False) + suffix

    before = max_length // 3
    start = max(0, pos - before)
    end = min(len(text), pos + len(needle) + (max_length - before))

    if start > 0:
        space = text.find(" ", start)
        if space != -1 and space < pos:
            start = space + 1

    snippet = html.escape(text[start:end], quote=False)
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."

    marker = re.compile(f"({re.escape(html.escape(needle, quote=False))})", re.IGNORECASE)
    return marker.sub(r"<mark>\1</mark>", snippet)
