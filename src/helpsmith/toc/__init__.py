"""Table-of-contents tree model and HTML codec."""

from __future__ import annotations

from helpsmith.toc.codec import extract_title, generate_html, parse_html
from helpsmith.toc.tree import (
    NodeLocation,
    add_node,
    collect_urls,
    find_node,
    find_parent_and_index,
    generate_new_id,
    indent_node,
    iter_nodes,
    move_down,
    move_node,
    move_up,
    outdent_node,
    remove_node,
)

__all__ = [
    "NodeLocation",
    "add_node",
    "collect_urls",
    "extract_title",
    "find_node",
    "find_parent_and_index",
    "generate_html",
    "generate_new_id",
    "indent_node",
    "iter_nodes",
    "move_down",
    "move_node",
    "move_up",
    "outdent_node",
    "parse_html",
    "remove_node",
]
