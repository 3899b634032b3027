"""Structural operations on the table-of-contents tree.

All functions are synchronous and only mutate the document they are given. Lookups that miss
return None or False; only edits that would corrupt the tree raise.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from helpsmith.errors import CyclicMoveError
from helpsmith.logging import get_logger
from helpsmith.models.toc import TocDocument, TocNode

logger = get_logger(__name__)

_ID_PREFIX_RE = re.compile(r"^\s*(\d+)")


@dataclass
class NodeLocation:
    """The list that owns a node and the node's index in it.

    `parent` is None for root-level nodes, in which case `elements` is the document's root list.
    """

    parent: TocNode | None
    elements: list[TocNode]
    index: int

    @property
    def node(self) -> TocNode:
        return self.elements[self.index]


def find_node(elements: list[TocNode], node_id: str) -> TocNode | None:
    """Depth-first search; the first match in document order wins."""

    for node in elements:
        if node.id == node_id:
            return node
        found = find_node(node.children, node_id)
        if found is not None:
            return found
    return None


def find_parent_and_index(
    elements: list[TocNode],
    node_id: str,
    parent: TocNode | None = None,
) -> NodeLocation | None:
    """Locate the list owning `node_id` so callers can splice it in place."""

    for index, node in enumerate(elements):
        if node.id == node_id:
            return NodeLocation(parent=parent, elements=elements, index=index)
        found = find_parent_and_index(node.children, node_id, node)
        if found is not None:
            return found
    return None


def walk(
    elements: list[TocNode],
    parent: TocNode | None = None,
) -> Iterator[tuple[TocNode, TocNode | None, int]]:
    """Yield `(node, parent, index)` for every node in document order."""

    for index, node in enumerate(elements):
        yield node, parent, index
        yield from walk(node.children, node)


def iter_nodes(elements: list[TocNode]) -> Iterator[TocNode]:
    """Yield every node in document order."""

    for node, _parent, _index in walk(elements):
        yield node


def contains_node(node: TocNode, node_id: str) -> bool:
    """True when `node_id` is `node` itself or one of its descendants."""

    return node.id == node_id or find_node(node.children, node_id) is not None


def generate_new_id(document: TocDocument) -> str:
    """Return one more than the largest integer id prefix in the tree.

    Only the part before the first `.` is considered; ids without a leading integer are ignored.
    Deleted ids are not reused while a larger id still exists.
    """

    max_num = 0
    for node in iter_nodes(document.elements):
        match = _ID_PREFIX_RE.match(node.id.split(".", 1)[0])
        if match:
            max_num = max(max_num, int(match.group(1)))
    return str(max_num + 1)


def add_node(document: TocDocument, parent_id: str | None, *, url: str, text: str) -> str | None:
    """Append a new leaf under `parent_id` (or at root level when None).

    The caller is responsible for creating the page behind `url`.

    Returns:
        The new node id, or None when `parent_id` does not exist.
    """

    if parent_id is None:
        target = document.elements
    else:
        parent = find_node(document.elements, parent_id)
        if parent is None:
            logger.debug("add_node: parent %s not found", parent_id)
            return None
        target = parent.children

    new_id = generate_new_id(document)
    target.append(TocNode(id=new_id, url=url, text=text))
    return new_id


def remove_node(document: TocDocument, node_id: str) -> bool:
    """Remove a node together with its whole subtree."""

    location = find_parent_and_index(document.elements, node_id)
    if location is None:
        return False
    del location.elements[location.index]
    return True


def _check_target(node: TocNode, target_id: str | None) -> None:
    if target_id is not None and contains_node(node, target_id):
        raise CyclicMoveError(node.id, target_id)


def move_node(document: TocDocument, node_id: str, new_parent_id: str | None) -> bool:
    """Re-parent a node as the last child of `new_parent_id` (root level when None).

    Raises:
        CyclicMoveError: If the target is the node itself or inside its subtree.
    """

    location = find_parent_and_index(document.elements, node_id)
    if location is None:
        return False
    node = location.node
    _check_target(node, new_parent_id)

    if new_parent_id is None:
        target = document.elements
    else:
        new_parent = find_node(document.elements, new_parent_id)
        if new_parent is None:
            return False
        target = new_parent.children

    del location.elements[location.index]
    target.append(node)
    return True


def move_up(document: TocDocument, node_id: str) -> bool:
    """Swap a node with its previous sibling; False at the start of the list."""

    location = find_parent_and_index(document.elements, node_id)
    if location is None or location.index == 0:
        return False
    items, i = location.elements, location.index
    items[i - 1], items[i] = items[i], items[i - 1]
    return True


def move_down(document: TocDocument, node_id: str) -> bool:
    """Swap a node with its next sibling; False at the end of the list."""

    location = find_parent_and_index(document.elements, node_id)
    if location is None or location.index >= len(location.elements) - 1:
        return False
    items, i = location.elements, location.index
    items[i + 1], items[i] = items[i], items[i + 1]
    return True


def indent_node(document: TocDocument, node_id: str) -> bool:
    """Make a node the last child of its previous sibling."""

    location = find_parent_and_index(document.elements, node_id)
    if location is None or location.index == 0:
        return False
    previous = location.elements[location.index - 1]
    node = location.node
    _check_target(node, previous.id)
    del location.elements[location.index]
    previous.children.append(node)
    return True


def outdent_node(document: TocDocument, node_id: str) -> bool:
    """Move a node out of its parent, directly after the parent."""

    location = find_parent_and_index(document.elements, node_id)
    if location is None or location.parent is None:
        return False
    parent_location = find_parent_and_index(document.elements, location.parent.id)
    if parent_location is None:
        return False
    node = location.node
    del location.elements[location.index]
    parent_location.elements.insert(parent_location.index + 1, node)
    return True


def collect_urls(document: TocDocument) -> set[str]:
    """Lowercased page urls of the tree with query and fragment removed."""

    urls: set[str] = set()
    for node in iter_nodes(document.elements):
        if node.url:
            urls.add(node.url.lower().split("#", 1)[0].split("?", 1)[0])
    return urls
