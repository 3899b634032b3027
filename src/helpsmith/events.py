"""Event model and publish/subscribe bus.

Components talk to each other through an `EventBus` owned by the open project session, so
the search index and the orphan scanner react to edits without depending on the editor.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from helpsmith.logging import get_logger

logger = get_logger(__name__)


class EventTopic(str, Enum):
    """Standard application events."""

    # Project
    PROJECT_OPENED = "project:opened"
    PROJECT_SAVED = "project:saved"
    PROJECT_CLOSED = "project:closed"

    # Sections
    SECTION_ADDED = "section:added"
    SECTION_DELETED = "section:deleted"
    SECTION_RENAMED = "section:renamed"
    SECTION_MOVED = "section:moved"

    # Content
    CONTENT_CHANGED = "content:changed"
    CONTENT_SAVED = "content:saved"

    # Build
    BUILD_STARTED = "build:started"
    BUILD_COMPLETED = "build:completed"
    BUILD_FAILED = "build:failed"

    # Scanning
    ORPHANS_SCANNED = "orphans:scanned"

    # Search
    SEARCH_INDEX_READY = "search:index-ready"


class EditorEvent(BaseModel):
    """A single event published on the bus."""

    topic: EventTopic
    ts: datetime = Field(default_factory=datetime.utcnow)
    data: dict[str, Any] = Field(default_factory=dict)


Handler = Callable[[EditorEvent], "Awaitable[None] | None"]


class EventBus:
    """In-process pub/sub.

    Handlers may be plain functions or coroutine functions; `emit` awaits coroutine results in
    subscription order. A failing handler is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[EventTopic, list[Handler]] = {}

    def on(self, topic: EventTopic, handler: Handler) -> Callable[[], None]:
        """Subscribe to a topic.

        Returns:
            A callable that removes the subscription.
        """

        handlers = self._listeners.setdefault(topic, [])
        if handler not in handlers:
            handlers.append(handler)
        return lambda: self.off(topic, handler)

    def once(self, topic: EventTopic, handler: Handler) -> None:
        """Subscribe to a single delivery of a topic."""

        def wrapper(event: EditorEvent) -> Awaitable[None] | None:
            self.off(topic, wrapper)
            return handler(event)

        self.on(topic, wrapper)

    def off(self, topic: EventTopic, handler: Handler) -> None:
        """Unsubscribe a handler; unknown handlers are ignored."""

        handlers = self._listeners.get(topic)
        if not handlers:
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._listeners[topic]

    async def emit(self, topic: EventTopic, **data: Any) -> EditorEvent:
        """Publish an event to every current subscriber of `topic`."""

        event = EditorEvent(topic=topic, data=data)
        for handler in list(self._listeners.get(topic, [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in event handler for %s", topic.value)
        return event

    def remove_all_listeners(self, topic: EventTopic | None = None) -> None:
        """Drop the handlers of one topic, or of every topic when `topic` is None."""

        if topic is None:
            self._listeners.clear()
        else:
            self._listeners.pop(topic, None)

    def listener_count(self, topic: EventTopic) -> int:
        """Return how many handlers are subscribed to `topic`."""

        return len(self._listeners.get(topic, []))
