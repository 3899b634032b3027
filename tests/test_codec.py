"""Tests for TOC HTML parsing and serialization."""

from __future__ import annotations

from conftest import TOC_HTML

from helpsmith.models.toc import TocDocument, TocNode
from helpsmith.toc.codec import DEFAULT_TITLE, extract_title, generate_html, parse_html


def test_parse_nested_toc() -> None:
    """It should read ids, urls, texts and nesting from the TOC page."""
    doc = parse_html(TOC_HTML)
    assert [n.id for n in doc.elements] == ["1", "4"]
    intro = doc.elements[0]
    assert intro.url == "intro.htm"
    assert intro.text == "Introduction"
    assert [(c.id, c.url, c.text) for c in intro.children] == [
        ("2", "install.htm", "Installation"),
        ("3", "setup.htm", "Setup guide"),
    ]
    assert doc.original_html == TOC_HTML


def test_round_trip_preserves_structure() -> None:
    """It should parse generated HTML back into the same tree."""
    doc = parse_html(TOC_HTML)
    again = parse_html(generate_html(doc))
    assert again.structure() == doc.structure()


def test_round_trip_deep_tree_clamps_heading_level() -> None:
    """It should keep deep nesting while capping the heading class at level 6."""
    leaf = TocNode(id="8", url="p8.htm", text="Level 8")
    node = leaf
    for i in range(7, 0, -1):
        node = TocNode(id=str(i), url=f"p{i}.htm", text=f"Level {i}", children=[node])
    doc = TocDocument(elements=[node])

    html_text = generate_html(doc)
    assert 'class="heading6 toc-page" id="i8"' in html_text
    assert "heading7" not in html_text
    assert parse_html(html_text).structure() == doc.structure()


def test_special_characters_survive_round_trip() -> None:
    """It should escape text and urls so they read back unchanged."""
    doc = TocDocument(elements=[TocNode(id="1", url="a&b.htm", text='Fish & "Chips" <fast>')])
    again = parse_html(generate_html(doc))
    assert again.structure() == doc.structure()


def test_empty_document() -> None:
    """It should treat a page without a TOC list as an empty tree and write it back empty."""
    doc = parse_html("<html><head><title>Empty</title></head><body></body></html>")
    assert doc.elements == []
    html_text = generate_html(doc)
    assert "<title>Empty</title>" in html_text
    assert parse_html(html_text).elements == []


def test_stray_top_level_items_are_recovered() -> None:
    """It should append top-level items that ended up outside the root list."""
    broken = (
        '<html><body><ul id="toc">'
        '<li class="heading1" id="i1"><a href="one.htm"><span>One</span></a></li>'
        "</ul>"
        '<div><li class="heading1" id="i5"><a href="late.htm"><span>Late</span></a></li></div>'
        "</body></html>"
    )
    doc = parse_html(broken)
    assert [(n.id, n.url, n.text) for n in doc.elements] == [("1", "one.htm", "One"), ("5", "late.htm", "Late")]


def test_missing_ids_and_duplicates_are_repaired() -> None:
    """It should invent ids for unnamed items and rename duplicated ones."""
    markup = (
        '<html><body><ul id="toc">'
        '<li id="i3"><a href="a.htm"><span>A</span></a></li>'
        '<li id="i3"><a href="b.htm"><span>B</span></a></li>'
        '<li><a href="c.htm">C</a></li>'
        "</ul></body></html>"
    )
    doc = parse_html(markup)
    ids = [n.id for n in doc.elements]
    assert ids == ["3", "4", "item_2"]
    assert doc.elements[2].text == "C"


def test_title_is_taken_from_original_page() -> None:
    """It should reuse the original title and fall back to the default one."""
    doc = parse_html(TOC_HTML)
    assert "<title>Product Help</title>" in generate_html(doc)
    assert extract_title(None) == DEFAULT_TITLE
    assert extract_title("<html></html>") == DEFAULT_TITLE


def test_only_folders_get_double_click_handler() -> None:
    """It should mark folders and pages and attach dblclick to folders only."""
    html_text = generate_html(parse_html(TOC_HTML))
    assert '<li class="heading1 toc-folder" id="i1"' in html_text
    assert '<span class="heading1" id="s1" ondblclick="return dblclicked(this)">' in html_text
    assert '<span class="heading2" id="s2">' in html_text
    assert 'target="hmcontent"' in html_text


def test_frame_name_is_configurable() -> None:
    """It should target links at the requested frame."""
    html_text = generate_html(parse_html(TOC_HTML), frame_name="main")
    assert 'target="main"' in html_text
    assert 'target="hmcontent"' not in html_text
