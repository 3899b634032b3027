"""Read and write the WebHelp TOC page (`hmcontent.htm`).

The TOC is a nested `<ul id="toc">` list. Each item looks like::

    <li class="heading2 toc-folder" id="i12" onclick="return clicked(this,event)">
      <a class="heading2" id="a12" href="setup.htm" target="hmcontent">
        <span class="heading2" id="s12" ondblclick="return dblclicked(this)">Setup</span></a>
      <ul>...</ul>
    </li>

Parsing is forgiving: a missing root list yields an empty tree, and top-level items that
malformed markup pushed outside the root list are recovered.
"""

from __future__ import annotations

import html
import re

from bs4 import BeautifulSoup, Tag

from helpsmith.logging import get_logger
from helpsmith.models.toc import TocDocument, TocNode
from helpsmith.toc.template import TOC_HEAD, TOC_TAIL

logger = get_logger(__name__)

TOC_ROOT_ID = "toc"
ITEM_ID_PREFIX = "i"
TOP_LEVEL_CLASS = "heading1"
MAX_HEADING_LEVEL = 6
DEFAULT_TITLE = "Help"
DEFAULT_FRAME = "hmcontent"

_TITLE_RE = re.compile(r"<title>([\s\S]*?)</title>", re.IGNORECASE)
_ITEM_ID_RE = re.compile(rf"^{ITEM_ID_PREFIX}")
_INT_RE = re.compile(r"^\s*(\d+)")


def parse_html(html_text: str) -> TocDocument:
    """Parse TOC HTML into a document.

    Never raises for malformed input; the original text is kept on the result.
    """

    soup = BeautifulSoup(html_text or "", "lxml")
    root = soup.find(id=TOC_ROOT_ID)
    if not isinstance(root, Tag):
        logger.warning("TOC root element #%s not found; starting with an empty tree", TOC_ROOT_ID)
        return TocDocument(elements=[], original_html=html_text or "")

    elements = _parse_list(root)

    # Legacy exports sometimes close the root list early, leaving top-level items behind it.
    body = soup.body
    if body is not None:
        strays = body.find_all("li", id=_ITEM_ID_RE)
        base = len(elements)
        for idx, li in enumerate(strays):
            if _is_inside(li, root):
                continue
            if TOP_LEVEL_CLASS in (li.get("class") or []):
                elements.append(_parse_item(li, base + idx))

    _dedupe_ids(elements)
    return TocDocument(elements=elements, original_html=html_text)


def _is_inside(tag: Tag, ancestor: Tag) -> bool:
    return any(parent is ancestor for parent in tag.parents)


def _parse_list(ul: Tag) -> list[TocNode]:
    items: list[TocNode] = []
    element_children = [c for c in ul.children if isinstance(c, Tag)]
    for index, child in enumerate(element_children):
        if child.name != "li":
            continue
        items.append(_parse_item(child, index))
    return items


def _parse_item(li: Tag, index: int) -> TocNode:
    raw_id = li.get("id") or ""
    node_id = raw_id[len(ITEM_ID_PREFIX) :] if raw_id.startswith(ITEM_ID_PREFIX) else raw_id
    if not node_id.strip():
        node_id = f"item_{index}"

    link = li.find("a", recursive=False)
    label = link.find("span", recursive=False) if isinstance(link, Tag) else None
    child_list = li.find("ul", recursive=False)

    url = ""
    text = ""
    if isinstance(link, Tag):
        url = link.get("href") or ""
        text = label.get_text() if isinstance(label, Tag) else link.get_text()

    children = _parse_list(child_list) if isinstance(child_list, Tag) else []
    return TocNode(id=node_id, url=url, text=text, children=children)


def _dedupe_ids(elements: list[TocNode]) -> None:
    """Give later duplicates a fresh integer id so the tree stays addressable."""

    all_nodes: list[TocNode] = []
    stack = list(reversed(elements))
    while stack:
        node = stack.pop()
        all_nodes.append(node)
        stack.extend(reversed(node.children))

    next_num = 1 + max(
        (int(m.group(1)) for n in all_nodes if (m := _INT_RE.match(n.id.split(".", 1)[0]))),
        default=0,
    )
    seen: set[str] = set()
    for node in all_nodes:
        if node.id in seen:
            logger.warning("Duplicate TOC id %s renamed to %s", node.id, next_num)
            node.id = str(next_num)
            next_num += 1
        seen.add(node.id)


def extract_title(html_text: str | None) -> str:
    """Title of a TOC page, or the default when it has none."""

    match = _TITLE_RE.search(html_text or "")
    return match.group(1) if match else DEFAULT_TITLE


def generate_html(
    document: TocDocument,
    original_html: str | None = None,
    *,
    frame_name: str = DEFAULT_FRAME,
) -> str:
    """Serialize a document into a complete TOC page.

    Args:
        document: Tree to render.
        original_html: Source of the page title; defaults to `document.original_html`.
        frame_name: Target frame of every link.

    Returns:
        The HTML page.
    """

    source = document.original_html if original_html is None else original_html
    head = TOC_HEAD.substitute(title=extract_title(source))
    parts: list[str] = []
    _render_list(document.elements, 1, frame_name, parts, root=True)
    return head + "".join(parts) + TOC_TAIL


def _render_list(
    items: list[TocNode],
    level: int,
    frame_name: str,
    out: list[str],
    *,
    root: bool = False,
) -> None:
    if not items:
        return

    if root:
        out.append(f'<ul id="{TOC_ROOT_ID}" style="list-style-type:none;display:block;padding-left:0">\n')
    else:
        out.append('<ul style="list-style-type:none">\n')

    frame = html.escape(frame_name, quote=True)
    for item in items:
        heading = f"heading{level}"
        kind = "toc-folder" if item.is_folder else "toc-page"
        dblclick = ' ondblclick="return dblclicked(this)"' if item.is_folder else ""
        item_id = html.escape(item.id, quote=True)

        out.append(
            f'<li class="{heading} {kind}" id="{ITEM_ID_PREFIX}{item_id}" onclick="return clicked(this,event)">'
        )
        out.append(
            f'<a class="{heading}" id="a{item_id}" href="{html.escape(item.url, quote=True)}" target="{frame}">'
        )
        out.append(
            f'<span class="{heading}" id="s{item_id}"{dblclick}>{html.escape(item.text, quote=False)}</span></a>\n'
        )
        if item.is_folder:
            _render_list(item.children, min(level + 1, MAX_HEADING_LEVEL), frame_name, out)
        out.append("</li>\n")

    out.append("</ul>\n")
