"""Tests for structural TOC operations."""

from __future__ import annotations

import pytest

from helpsmith.errors import CyclicMoveError
from helpsmith.models.toc import TocDocument, TocNode
from helpsmith.toc import tree


def _doc() -> TocDocument:
    return TocDocument(
        elements=[
            TocNode(
                id="1",
                url="a.htm",
                text="A",
                children=[
                    TocNode(id="2", url="b.htm", text="B"),
                    TocNode(id="3", url="c.htm", text="C"),
                ],
            ),
            TocNode(id="4", url="d.htm", text="D"),
        ]
    )


def _ids(doc: TocDocument) -> list[str]:
    return [n.id for n in tree.iter_nodes(doc.elements)]


def test_generate_new_id_uses_integer_prefix() -> None:
    """It should return one more than the largest leading integer, ignoring other ids."""
    doc = TocDocument(
        elements=[
            TocNode(id="7.2", url="", text="x"),
            TocNode(id="item_0", url="", text="y"),
            TocNode(id="3", url="", text="z"),
        ]
    )
    assert tree.generate_new_id(doc) == "8"
    assert tree.generate_new_id(TocDocument()) == "1"


def test_add_node_under_parent_and_root() -> None:
    """It should append new leaves and report a missing parent with None."""
    doc = _doc()
    new_id = tree.add_node(doc, "1", url="e.htm", text="E")
    assert new_id == "5"
    assert [c.id for c in doc.elements[0].children] == ["2", "3", "5"]

    assert tree.add_node(doc, None, url="f.htm", text="F") == "6"
    assert doc.elements[-1].text == "F"
    assert tree.add_node(doc, "missing", url="g.htm", text="G") is None


def test_ids_stay_unique_after_add_delete_cycles() -> None:
    """It should never hand out an id that is still present."""
    doc = _doc()
    for _ in range(5):
        added = tree.add_node(doc, "1", url="x.htm", text="X")
        assert added is not None
        tree.remove_node(doc, "2" if tree.find_node(doc.elements, "2") else added)
        ids = _ids(doc)
        assert len(ids) == len(set(ids))


def test_remove_node_drops_subtree() -> None:
    """It should remove the node together with its children."""
    doc = _doc()
    assert tree.remove_node(doc, "1") is True
    assert _ids(doc) == ["4"]
    assert tree.remove_node(doc, "1") is False


def test_move_node_reparents_as_last_child() -> None:
    """It should move a node under a new parent or to the root."""
    doc = _doc()
    assert tree.move_node(doc, "4", "1") is True
    assert [c.id for c in doc.elements[0].children] == ["2", "3", "4"]

    assert tree.move_node(doc, "2", None) is True
    assert [n.id for n in doc.elements] == ["1", "2"]
    assert tree.move_node(doc, "2", "missing") is False
    assert tree.move_node(doc, "missing", None) is False


def test_move_into_own_subtree_raises_and_keeps_tree() -> None:
    """It should reject moves that would detach a subtree."""
    doc = _doc()
    before = doc.structure()
    with pytest.raises(CyclicMoveError):
        tree.move_node(doc, "1", "3")
    with pytest.raises(CyclicMoveError):
        tree.move_node(doc, "1", "1")
    assert doc.structure() == before


def test_move_up_and_down_respect_boundaries() -> None:
    """It should swap siblings and refuse to move past either end."""
    doc = _doc()
    assert tree.move_up(doc, "2") is False
    assert tree.move_down(doc, "3") is False
    assert tree.move_down(doc, "2") is True
    assert [c.id for c in doc.elements[0].children] == ["3", "2"]
    assert tree.move_up(doc, "2") is True
    assert [c.id for c in doc.elements[0].children] == ["2", "3"]


def test_indent_then_outdent_restores_structure() -> None:
    """It should make outdent the inverse of indent for a last child."""
    doc = _doc()
    before = doc.structure()
    assert tree.indent_node(doc, "3") is True
    assert [c.id for c in doc.elements[0].children[0].children] == ["3"]
    assert tree.outdent_node(doc, "3") is True
    assert doc.structure() == before


def test_indent_and_outdent_edge_cases() -> None:
    """It should refuse to indent a first child or outdent a root node."""
    doc = _doc()
    assert tree.indent_node(doc, "1") is False
    assert tree.indent_node(doc, "2") is False
    assert tree.outdent_node(doc, "4") is False


def test_outdent_places_node_after_parent() -> None:
    """It should insert the node directly after its former parent."""
    doc = _doc()
    assert tree.outdent_node(doc, "2") is True
    assert [n.id for n in doc.elements] == ["1", "2", "4"]


def test_collect_urls_strips_fragments() -> None:
    """It should lowercase urls and drop anchors and queries."""
    doc = TocDocument(elements=[TocNode(id="1", url="Page.htm#top", text="P"), TocNode(id="2", url="", text="F")])
    assert tree.collect_urls(doc) == {"page.htm"}


def test_document_rejects_duplicate_ids() -> None:
    """It should refuse to build a document with duplicate ids."""
    with pytest.raises(ValueError):
        TocDocument(elements=[TocNode(id="1", url="", text="a"), TocNode(id="1", url="", text="b")])


def test_single_root_page_on_empty_document() -> None:
    """It should give the first node id 1 and offer 2 next."""
    doc = TocDocument()
    assert tree.find_node(doc.elements, "x") is None
    assert tree.add_node(doc, None, url="a.htm", text="Intro") == "1"
    assert [(n.id, n.url, n.text, n.children) for n in doc.elements] == [("1", "a.htm", "Intro", [])]
    assert tree.generate_new_id(doc) == "2"
