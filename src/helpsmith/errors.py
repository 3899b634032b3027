"""Exception hierarchy."""

from __future__ import annotations


class HelpsmithError(Exception):
    """Base class for all helpsmith errors."""


class TocStructureError(HelpsmithError):
    """A structural edit would break the table-of-contents tree."""


class CyclicMoveError(TocStructureError):
    """A node was asked to move into itself or into one of its descendants."""

    def __init__(self, node_id: str, target_id: str) -> None:
        super().__init__(f"Cannot move node '{node_id}' into its own subtree (target '{target_id}')")
        self.node_id = node_id
        self.target_id = target_id


class ProjectOpenError(HelpsmithError):
    """The project could not be opened (e.g. the TOC file is unreadable)."""


class ProjectNotOpenError(HelpsmithError):
    """An operation needs an open project but none is loaded."""
