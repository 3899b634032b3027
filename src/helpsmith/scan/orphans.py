"""Find pages missing from the table of contents and images nothing refers to.

Scans are not incremental: every call re-reads all pages and stylesheets. Files that cannot be
read are skipped with a warning.
"""

from __future__ import annotations

import posixpath
import re
from urllib.parse import unquote

from bs4 import BeautifulSoup

from helpsmith.backends.async_base import AsyncBackend
from helpsmith.logging import get_logger, log_exception
from helpsmith.models.scan import OrphanPage, PageInfo, ScanResult
from helpsmith.models.toc import TocDocument
from helpsmith.toc.tree import iter_nodes

logger = get_logger(__name__)

# Viewer pages shipped with every WebHelp project; never reported as orphans.
SYSTEM_FILES = frozenset(
    {
        "hmcontent.htm",
        "hmindex.htm",
        "hmtopic.htm",
        "hmsearch.htm",
        "hmresult.htm",
        "hmquery.htm",
        "hmnavigation.htm",
        "default.htm",
        "index.htm",
        "toc.htm",
    }
)

PAGE_EXTENSIONS = [".htm", ".html"]
STYLESHEET_EXTENSIONS = [".css"]
IMAGE_EXTENSIONS = [".png", ".jpg", ".jpeg", ".gif", ".svg", ".bmp", ".webp"]

_CSS_URL_RE = re.compile(r"url\(\s*[\"']?([^\"')]+)[\"']?\s*\)", re.IGNORECASE)
_ATTR_REF_RE = re.compile(r"(?:src|background)\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_PAGE_EXT_RE = re.compile(r"\.html?$", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """Comparable form of a page or image reference.

    Lowercased, without query or fragment, percent-decoded, `/`-separated and without a
    leading `./`.
    """

    value = url.lower().split("#", 1)[0].split("?", 1)[0]
    value = unquote(value).replace("\\", "/")
    while value.startswith("./"):
        value = value[2:]
    return value


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _is_local(ref: str) -> bool:
    return not (ref.startswith("data:") or ref.startswith("http"))


def collect_referenced_urls(document: TocDocument) -> set[str]:
    """Normalized urls of every TOC node that has a page."""

    return {normalize_url(node.url) for node in iter_nodes(document.elements) if node.url}


def extract_page_info(page_html: str, filename: str) -> PageInfo:
    """Title, local images and stylesheets of a page.

    The title comes from `<title>`, then the first `<h1>`, then the file name.
    """

    info = PageInfo(title=_PAGE_EXT_RE.sub("", filename))
    soup = BeautifulSoup(page_html or "", "lxml")

    title_tag = soup.find("title")
    h1 = soup.find("h1")
    if title_tag is not None and title_tag.get_text().strip():
        info.title = title_tag.get_text().strip()
    elif h1 is not None and h1.get_text().strip():
        info.title = h1.get_text().strip()

    images: dict[str, None] = {}
    for img in soup.find_all("img", src=True):
        src = img["src"]
        if src and _is_local(src):
            images[src] = None
    for el in soup.find_all(background=True):
        bg = el["background"]
        if bg and _is_local(bg):
            images[bg] = None
    for el in soup.find_all(style=True):
        for ref in _CSS_URL_RE.findall(el["style"]):
            if _is_local(ref):
                images[ref] = None
    info.images = list(images)

    for link in soup.find_all("link", href=True):
        rel = [r.lower() for r in (link.get("rel") or [])]
        if "stylesheet" in rel:
            info.styles.append(link["href"])
    return info


async def read_page_info(backend: AsyncBackend, filename: str) -> PageInfo:
    """`extract_page_info` for a project file; unreadable files keep the fallback title."""

    result = await backend.aread_text_file(filename)
    if not result.success:
        logger.warning("Cannot read %s: %s", filename, result.error)
        return PageInfo(title=_PAGE_EXT_RE.sub("", filename))
    return extract_page_info(result.content or "", filename)


async def extract_title(backend: AsyncBackend, filename: str) -> str:
    """Title of a project page."""

    return (await read_page_info(backend, filename)).title


def is_orphan(filename: str, referenced: set[str]) -> bool:
    """True when a page is neither a system page nor referenced from the TOC."""

    normalized = normalize_url(filename)
    base = _basename(normalized)
    if normalized in SYSTEM_FILES or base in SYSTEM_FILES:
        return False
    return normalized not in referenced and base not in referenced


async def detect_orphan_pages(
    backend: AsyncBackend,
    document: TocDocument,
    page_files: list[str] | None = None,
) -> list[OrphanPage]:
    """Pages present in the project but unreachable from the TOC.

    Args:
        backend: Project file access.
        document: Current tree.
        page_files: Pages to check; defaults to every page in the project.
    """

    referenced = collect_referenced_urls(document)
    if page_files is None:
        page_files = await backend.alist_files_recursive(None, PAGE_EXTENSIONS)

    orphans: list[OrphanPage] = []
    for filename in page_files:
        if not is_orphan(filename, referenced):
            continue
        info = await read_page_info(backend, filename)
        orphans.append(OrphanPage(filename=filename, **info.model_dump()))
    return orphans


def _is_remote(ref: str) -> bool:
    return ref.lower().startswith(("http://", "https://", "data:", "file://", "//"))


def _resolve_ref(ref: str, source_file: str = "") -> str:
    """Project-relative, normalized path of a reference found in `source_file`."""

    value = normalize_url(ref.strip())
    if not value:
        return ""
    if value.startswith("/"):
        return posixpath.normpath(value.lstrip("/"))
    base = posixpath.dirname(normalize_url(source_file)) if source_file else ""
    return posixpath.normpath(posixpath.join(base, value))


def extract_image_references(
    text: str,
    *,
    include_attributes: bool = True,
    source_file: str = "",
) -> set[str]:
    """Image references of a page (`src`, `background`, `url(...)`) or stylesheet (`url(...)`).

    Relative references are resolved against the directory of `source_file`.
    """

    raw_refs = list(_CSS_URL_RE.findall(text))
    if include_attributes:
        raw_refs.extend(_ATTR_REF_RE.findall(text))

    refs: set[str] = set()
    for raw in raw_refs:
        if _is_remote(raw.strip()):
            continue
        ref = _resolve_ref(raw, source_file)
        if ref:
            refs.add(ref)
    return refs


def unreferenced_images(image_files: list[str], references: set[str]) -> list[str]:
    """Images whose path and bare file name both miss the reference set."""

    names = {_basename(ref) for ref in references}
    unused = []
    for path in image_files:
        normalized = normalize_url(path)
        if normalized not in references and _basename(normalized) not in names:
            unused.append(path)
    return unused


async def detect_unused_images(
    backend: AsyncBackend,
    image_files: list[str] | None = None,
    page_files: list[str] | None = None,
    stylesheet_files: list[str] | None = None,
) -> list[str]:
    """Images that no page or stylesheet refers to.

    Matching by bare file name is a fallback for references written with a different path
    prefix than the image's location.
    """

    if image_files is None:
        image_files = await backend.alist_files_recursive(None, IMAGE_EXTENSIONS)
    if not image_files:
        return []
    if page_files is None:
        page_files = await backend.alist_files_recursive(None, PAGE_EXTENSIONS)
    if stylesheet_files is None:
        stylesheet_files = await backend.alist_files_recursive(None, STYLESHEET_EXTENSIONS)

    references: set[str] = set()
    for filename in page_files:
        result = await backend.aread_text_file(filename)
        if not result.success:
            logger.warning("Skipping %s while scanning images: %s", filename, result.error)
            continue
        references |= extract_image_references(result.content or "", source_file=filename)
    for filename in stylesheet_files:
        result = await backend.aread_text_file(filename)
        if not result.success:
            logger.warning("Skipping stylesheet %s: %s", filename, result.error)
            continue
        references |= extract_image_references(
            result.content or "", include_attributes=False, source_file=filename
        )

    return unreferenced_images(image_files, references)


async def scan_project(backend: AsyncBackend, document: TocDocument) -> ScanResult:
    """Run both scans; a failure in one leaves its list empty."""

    orphan_pages: list[OrphanPage] = []
    unused_images: list[str] = []
    try:
        orphan_pages = await detect_orphan_pages(backend, document)
    except Exception:
        log_exception(logger, "Orphan page detection failed")
    try:
        unused_images = await detect_unused_images(backend)
    except Exception:
        log_exception(logger, "Unused image detection failed")

    logger.info("Scan found %d orphan pages, %d unused images", len(orphan_pages), len(unused_images))
    return ScanResult(orphan_pages=orphan_pages, unused_images=unused_images)
