"""The open project: tree, search index and scan results behind one object.

A `ProjectSession` is created per project and discarded on close. Opening resets everything
before loading, so nothing from a previous project survives. Structural edits are synchronous
tree mutations followed by an event; page reads and writes are awaited.
"""

from __future__ import annotations

import html
from collections.abc import Callable
from pathlib import Path

from bs4 import BeautifulSoup, Tag

from helpsmith.backends.async_base import AsyncBackend
from helpsmith.backends.filesystem import FilesystemBackend
from helpsmith.backends.protocol import ReadResult, WriteResult
from helpsmith.build.generators import BuildReport, generate_all
from helpsmith.config import Settings
from helpsmith.errors import ProjectNotOpenError, ProjectOpenError
from helpsmith.events import EditorEvent, EventBus, EventTopic
from helpsmith.logging import get_logger, set_project
from helpsmith.models.scan import ScanResult
from helpsmith.models.search import SearchHit
from helpsmith.models.toc import TocDocument
from helpsmith.scan.orphans import extract_title, scan_project
from helpsmith.search.index import SearchIndex, SearchMode
from helpsmith.toc import tree
from helpsmith.toc.codec import generate_html, parse_html

logger = get_logger(__name__)

TOC_MODIFIED = "toc"
TOC_LINK_TEXT = "Click to Display Table of Contents"

_NEW_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<link rel="stylesheet" href="default.css">
</head>
<body>
<h1>{title}</h1>
{body}
</body>
</html>"""


class ProjectSession:
    """Everything that belongs to the currently open help project."""

    def __init__(
        self,
        backend: AsyncBackend,
        settings: Settings | None = None,
        *,
        bus: EventBus | None = None,
        name: str = "project",
    ) -> None:
        self.backend = backend
        self.settings = settings or Settings()
        self.bus = bus or EventBus()
        self.name = name
        self.document: TocDocument | None = None
        self.index = SearchIndex(backend, self.settings)
        self.scan_result = ScanResult()
        self.modified: set[str] = set()
        self._unsubscribers: list[Callable[[], None]] = []

    @classmethod
    def for_directory(cls, root: str | Path, settings: Settings | None = None) -> "ProjectSession":
        """Session over a project folder on disk."""

        root_path = Path(root)
        return cls(FilesystemBackend(root_path), settings, name=root_path.name or str(root_path))

    @property
    def is_open(self) -> bool:
        return self.document is not None

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self.modified)

    def require_document(self) -> TocDocument:
        if self.document is None:
            raise ProjectNotOpenError("No project is open")
        return self.document

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self, *, index: bool = True, scan: bool = True) -> TocDocument:
        """Load the project's TOC, then prepare the search index and the orphan scan.

        Raises:
            ProjectOpenError: If the TOC file cannot be read.
        """

        self._reset()
        set_project(self.name)
        toc_name = self.settings.toc_filename

        result = await self.backend.aread_text_file(toc_name)
        if not result.success:
            raise ProjectOpenError(f"Cannot load {toc_name}: {result.error}")
        content = result.content or ""

        backup = await self.backend.awrite_text_file(f"{toc_name}.backup", content)
        if not backup.success:
            logger.warning("Could not back up %s: %s", toc_name, backup.error)

        self.document = parse_html(content)
        self._subscribe()
        logger.info("Opened %s with %d top-level sections", self.name, len(self.document.elements))
        await self.bus.emit(EventTopic.PROJECT_OPENED, name=self.name)

        if index:
            await self.index.load_or_build(self.document)
            if self.index.is_ready:
                await self.bus.emit(EventTopic.SEARCH_INDEX_READY, documents=len(self.index.documents))
        if scan:
            await self.rescan()
        return self.document

    async def close(self) -> None:
        if self.document is not None:
            await self.bus.emit(EventTopic.PROJECT_CLOSED, name=self.name)
        self._reset()

    def _reset(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.document = None
        self.index.reset()
        self.scan_result = ScanResult()
        self.modified.clear()

    def _subscribe(self) -> None:
        self._unsubscribers = [
            self.bus.on(EventTopic.CONTENT_SAVED, self._reindex_one),
            self.bus.on(EventTopic.SECTION_ADDED, self._reindex_one),
            self.bus.on(EventTopic.SECTION_RENAMED, self._reindex_one),
            self.bus.on(EventTopic.SECTION_DELETED, self._drop_from_index),
            self.bus.on(EventTopic.CONTENT_CHANGED, self._mark_modified),
        ]

    def _mark_modified(self, event: EditorEvent) -> None:
        self.modified.add(event.data["id"])

    async def _reindex_one(self, event: EditorEvent) -> None:
        if self.document is not None:
            await self.index.update_document(self.document, event.data["id"])

    async def _drop_from_index(self, event: EditorEvent) -> None:
        for node_id in event.data.get("ids", [event.data["id"]]):
            await self.index.remove_document(node_id)

    # ------------------------------------------------------------------
    # Section editing
    # ------------------------------------------------------------------

    async def add_section(self, title: str, filename: str, parent_id: str | None = None) -> str | None:
        """Add a node and create its page with a starter body.

        Returns:
            The new node id, or None if the parent is unknown or the page could not be written.
        """

        document = self.require_document()
        new_id = tree.add_node(document, parent_id, url=filename, text=title)
        if new_id is None:
            return None

        page = _NEW_PAGE.format(title=html.escape(title), body="<p></p>")
        written = await self.backend.awrite_text_file(filename, page)
        if not written.success:
            logger.error("Cannot create page %s: %s", filename, written.error)
            tree.remove_node(document, new_id)
            return None

        logger.info("Added section %s (%s)", new_id, filename)
        self.modified.add(TOC_MODIFIED)
        await self.bus.emit(EventTopic.SECTION_ADDED, id=new_id, title=title, filename=filename, parent_id=parent_id)
        return new_id

    async def add_section_from_file(self, title: str, filename: str, parent_id: str | None = None) -> str | None:
        """Add a node for a page that already exists."""

        new_id = tree.add_node(self.require_document(), parent_id, url=filename, text=title)
        if new_id is None:
            return None
        self.modified.add(TOC_MODIFIED)
        await self.bus.emit(EventTopic.SECTION_ADDED, id=new_id, title=title, filename=filename, parent_id=parent_id)
        return new_id

    async def delete_section(self, node_id: str) -> bool:
        """Remove a node and its subtree from the TOC. Pages stay on disk as orphans."""

        document = self.require_document()
        node = tree.find_node(document.elements, node_id)
        if node is None:
            return False
        subtree_ids = [n.id for n in tree.iter_nodes([node])]
        tree.remove_node(document, node_id)
        logger.info("Deleted section %s with %d nodes", node_id, len(subtree_ids))

        self.modified.add(TOC_MODIFIED)
        self.modified.difference_update(subtree_ids)
        await self.bus.emit(EventTopic.SECTION_DELETED, id=node_id, ids=subtree_ids)
        await self.rescan()
        return True

    async def rename_section(self, node_id: str, title: str) -> bool:
        node = tree.find_node(self.require_document().elements, node_id)
        if node is None:
            return False
        node.text = title
        self.modified.add(TOC_MODIFIED)
        await self.bus.emit(EventTopic.SECTION_RENAMED, id=node_id, title=title)
        return True

    async def move_section(self, node_id: str, target_id: str | None) -> bool:
        """Re-parent a section; raises `CyclicMoveError` for moves into its own subtree."""

        if not tree.move_node(self.require_document(), node_id, target_id):
            return False
        return await self._moved(node_id, target_id=target_id)

    async def move_section_up(self, node_id: str) -> bool:
        if not tree.move_up(self.require_document(), node_id):
            return False
        return await self._moved(node_id, direction="up")

    async def move_section_down(self, node_id: str) -> bool:
        if not tree.move_down(self.require_document(), node_id):
            return False
        return await self._moved(node_id, direction="down")

    async def indent_section(self, node_id: str) -> bool:
        if not tree.indent_node(self.require_document(), node_id):
            return False
        return await self._moved(node_id, direction="indent")

    async def outdent_section(self, node_id: str) -> bool:
        if not tree.outdent_node(self.require_document(), node_id):
            return False
        return await self._moved(node_id, direction="outdent")

    async def _moved(self, node_id: str, **data: object) -> bool:
        logger.debug("Moved section %s: %s", node_id, data)
        self.modified.add(TOC_MODIFIED)
        await self.bus.emit(EventTopic.SECTION_MOVED, id=node_id, **data)
        return True

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    async def read_page(self, node_id: str) -> ReadResult:
        node = tree.find_node(self.require_document().elements, node_id)
        if node is None or not node.url:
            return ReadResult(error=f"Section '{node_id}' has no page")
        return await self.backend.aread_text_file(node.url)

    async def load_content(self, node_id: str) -> ReadResult:
        """Editable body HTML of a section, the counterpart of `save_content`."""

        page = await self.read_page(node_id)
        if not page.success:
            return page
        return ReadResult(content=extract_body_html(page.content or ""))

    async def save_content(self, node_id: str, body_html: str) -> WriteResult:
        """Write edited body HTML back into the section's page.

        The existing page shell is kept: its title and header heading follow the section
        title and the content container is replaced. Pages without a shell get a minimal one.
        """

        node = tree.find_node(self.require_document().elements, node_id)
        if node is None or not node.url:
            return WriteResult(error=f"Section '{node_id}' has no page")

        existing = await self.backend.aread_text_file(node.url)
        page = compose_page(existing.content if existing.success else None, node.text, body_html)
        result = await self.backend.awrite_text_file(node.url, page)
        if not result.success:
            logger.error("Saving %s failed: %s", node.url, result.error)
            return result

        self.modified.discard(node_id)
        await self.bus.emit(EventTopic.CONTENT_SAVED, id=node_id)
        return result

    async def update_section_css(self, node_id: str, css_files: list[str]) -> WriteResult:
        """Replace the stylesheet links of a section's page."""

        node = tree.find_node(self.require_document().elements, node_id)
        if node is None or not node.url:
            return WriteResult(error=f"Section '{node_id}' has no page")
        page = await self.backend.aread_text_file(node.url)
        if not page.success:
            return WriteResult(error=page.error)

        soup = BeautifulSoup(page.content or "", "lxml")
        for link in soup.find_all("link"):
            if "stylesheet" in [r.lower() for r in (link.get("rel") or [])]:
                link.decompose()
        head = soup.head
        if head is None:
            head = soup.new_tag("head")
            if soup.html is not None:
                soup.html.insert(0, head)
        for css in css_files:
            head.append(soup.new_tag("link", rel="stylesheet", href=css))

        return await self.backend.awrite_text_file(node.url, "<!DOCTYPE html>\n" + str(soup.html))

    # ------------------------------------------------------------------
    # Orphans
    # ------------------------------------------------------------------

    async def rescan(self) -> ScanResult:
        self.scan_result = await scan_project(self.backend, self.require_document())
        await self.bus.emit(
            EventTopic.ORPHANS_SCANNED,
            orphan_pages=[p.filename for p in self.scan_result.orphan_pages],
            unused_images=list(self.scan_result.unused_images),
        )
        return self.scan_result

    async def adopt_orphan_page(self, filename: str, parent_id: str | None = None) -> str | None:
        """Put an orphan page into the TOC under its own title."""

        title = await extract_title(self.backend, filename)
        new_id = await self.add_section_from_file(title, filename, parent_id)
        if new_id is not None:
            await self.rescan()
        return new_id

    async def delete_orphan_file(self, filename: str) -> WriteResult:
        result = await self.backend.adelete_file(filename)
        if not result.success:
            logger.error("Cannot delete %s: %s", filename, result.error)
        await self.rescan()
        return result

    async def delete_unused_image(self, path: str) -> WriteResult:
        return await self.delete_orphan_file(path)

    # ------------------------------------------------------------------
    # Save, search, build
    # ------------------------------------------------------------------

    async def save_toc(self) -> WriteResult:
        document = self.require_document()
        content = generate_html(document, frame_name=self.settings.frame_name)
        result = await self.backend.awrite_text_file(self.settings.toc_filename, content)
        if not result.success:
            logger.error("Saving %s failed: %s", self.settings.toc_filename, result.error)
            return result
        document.original_html = content
        self.modified.discard(TOC_MODIFIED)
        return result

    async def save_all(self) -> WriteResult:
        result = await self.save_toc()
        if result.success:
            self.modified.clear()
            await self.bus.emit(EventTopic.PROJECT_SAVED, name=self.name)
        return result

    def search(self, query: str, mode: SearchMode = "title") -> list[SearchHit]:
        return self.index.search(query, mode)

    async def build(self, output: AsyncBackend | None = None) -> BuildReport:
        """Save, generate every artifact and write it to `output`.

        A rebuild of the search index that is still running is waited for a bounded time;
        after that the build goes on with whatever the index holds.
        """

        document = self.require_document()
        output = output or FilesystemBackend(self.settings.output_dir)

        saved = await self.save_all()
        if not saved.success:
            await self.bus.emit(EventTopic.BUILD_FAILED, error=saved.error)
            return BuildReport(errors=[saved.error or "save failed"])

        await self.bus.emit(EventTopic.BUILD_STARTED, name=self.name)

        notes: list[str] = []
        if self.index.is_indexing and not await self.index.wait_until_idle():
            notes.append("Search indexing did not finish in time; building without it")
            logger.warning(notes[-1])
        if not self.index.is_ready and not self.index.is_indexing:
            await self.index.build_index(document)

        report = generate_all(document, self.index, self.settings)
        report.warnings[:0] = notes
        for filename, content in report.files.items():
            written = await output.awrite_text_file(filename, content)
            if not written.success:
                report.errors.append(written.error or f"cannot write {filename}")

        if report.success:
            logger.info("Build finished: %d files", len(report.files))
            await self.bus.emit(EventTopic.BUILD_COMPLETED, files=sorted(report.files), warnings=report.warnings)
        else:
            logger.error("Build failed: %s", "; ".join(report.errors))
            await self.bus.emit(EventTopic.BUILD_FAILED, error="; ".join(report.errors))

        await self.rescan()
        return report


def compose_page(existing_html: str | None, title: str, body_html: str) -> str:
    """Page HTML for a section with edited body content."""

    if not existing_html:
        return _NEW_PAGE.format(title=html.escape(title), body=body_html)

    soup = BeautifulSoup(existing_html, "lxml")
    if soup.title is not None:
        soup.title.string = title

    header_h1 = soup.select_one("#idheader h1, #printheader h1")
    if header_h1 is not None:
        header_h1.clear()
        span = soup.new_tag("span", attrs={"class": "f_Heading1"})
        span.string = title
        header_h1.append(span)

    container = soup.select_one("#innerdiv") or soup.select_one("#idcontent") or soup.body
    if container is None:
        return _NEW_PAGE.format(title=html.escape(title), body=body_html)

    container.clear()
    fragment = BeautifulSoup(f"<h1>{html.escape(title)}</h1>\n{body_html}", "html.parser")
    for child in list(fragment.contents):
        container.append(child.extract())
    return "<!DOCTYPE html>\n" + str(soup.html)


def _closest(tag: Tag, name: str, stop: Tag) -> Tag | None:
    for parent in tag.parents:
        if parent is stop:
            return None
        if parent.name == name:
            return parent
    return None


def extract_body_html(page_html: str) -> str:
    """Content HTML of a page as the editor shows it.

    Takes the inner HTML of the content container and drops the "Click to Display Table of
    Contents" block and the first heading, which `compose_page` writes back from the title.
    """

    soup = BeautifulSoup(page_html or "", "lxml")
    container = soup.select_one("#innerdiv") or soup.select_one("#idcontent") or soup.body
    if container is None:
        return ""

    for link in container.find_all("a"):
        if link.decomposed or TOC_LINK_TEXT not in link.get_text():
            continue
        block = _closest(link, "p", container) or _closest(link, "div", container) or link.parent
        if block is None or block is container:
            block = link
        block.decompose()

    heading = container.find("h1")
    if heading is not None:
        heading.decompose()
    return "".join(str(child) for child in container.contents).strip()
