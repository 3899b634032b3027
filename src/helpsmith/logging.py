"""Logging setup.

Records carry the name of the open project so messages from several sessions (or a CLI run
over a different directory) can be told apart. Logs go to stderr; stdout is left to the CLI's
own output.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
from collections.abc import Iterator

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "project=%(project)s %(name)s: %(message)s"

_project_var: contextvars.ContextVar[str] = contextvars.ContextVar("helpsmith_project", default="-")


class ProjectFilter(logging.Filter):
    """Stamp each record with the project bound in the current context."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.project = _project_var.get()  # type: ignore[attr-defined]
        return True


@contextlib.contextmanager
def project_context(*, project: str) -> Iterator[None]:
    """Bind `project` to log records emitted inside the block."""

    token = _project_var.set(project)
    try:
        yield
    finally:
        _project_var.reset(token)


def set_project(project: str) -> None:
    """Bind `project` for the rest of the current context (e.g. after a session opens)."""

    _project_var.set(project)


def configure_logging(level: str = "INFO") -> None:
    """Route logging through one Rich handler on stderr.

    Calling it again only updates the level, so commands may call it unconditionally.

    Args:
        level: Logging level name.
    """

    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in root.handlers:
        if getattr(handler, "_helpsmith", False):
            return

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler._helpsmith = True  # type: ignore[attr-defined]
    handler.addFilter(ProjectFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""

    return logging.getLogger(name)


def log_exception(logger: logging.Logger, msg: str, **context: object) -> None:
    """Log the active exception, with keyword context appended when given."""

    if context:
        details = " ".join(f"{key}={value}" for key, value in context.items())
        logger.exception("%s (%s)", msg, details)
    else:
        logger.exception("%s", msg)
