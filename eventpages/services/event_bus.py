"""Publish/subscribe channel from the persistence core to the editor UI."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from eventpages.schemas.page import Page, PageDocument, SaveResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentPublished:
    """A page document is ready to show.

    ``initial`` is True for the immediate cache/template result of a load and
    False when a later background refresh replaces it.
    """

    page_id: str
    document: PageDocument
    title: str
    generation: int
    initial: bool
    source: str


@dataclass(frozen=True)
class RegistryChanged:
    pages: list[Page]


@dataclass(frozen=True)
class SaveCompleted:
    page_id: str
    result: SaveResult


PageEvent = DocumentPublished | RegistryChanged | SaveCompleted
Subscriber = Callable[[PageEvent], None]


class EventBus:
    """Synchronous fan-out of page events to subscribers.

    Safe under asyncio's single-threaded cooperative model: publishing never
    awaits, so subscribers observe events in publication order.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: PageEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %r failed handling %s", callback, type(event).__name__)
