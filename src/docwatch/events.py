"""Event models and the publish/subscribe bus shared across watcher components."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)


class WatcherEvent(str, Enum):
    """Signals published by the watcher."""

    DID_START_LOADING_FILES = "did_start_loading_files"
    DID_END_LOADING_FILES = "did_end_loading_files"
    FILES_ADDED = "files_added"
    FILES_RENAMED = "files_renamed"
    FILES_DELETED = "files_deleted"


@dataclass(frozen=True)
class FileEntry:
    """One item in the watched directory at a point in time."""

    name: str
    size: int
    modified_at: float


Snapshot = Dict[str, FileEntry]


@dataclass(frozen=True)
class ChangeSet:
    """Classified differences between two snapshots."""

    added: Tuple[str, ...] = ()
    renamed: Dict[str, str] = field(default_factory=dict)
    deleted: Tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not (self.added or self.renamed or self.deleted)


Subscriber = Callable[[WatcherEvent, Any], None]


class EventBus:
    """Synchronous publish/subscribe dispatcher.

    Subscribers are invoked in registration order on the publishing thread.
    A subscriber that raises is logged and skipped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[WatcherEvent, List[Subscriber]] = {event: [] for event in WatcherEvent}

    def subscribe(self, event: WatcherEvent, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers[WatcherEvent(event)].append(callback)

    def unsubscribe(self, event: WatcherEvent, callback: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers[WatcherEvent(event)].remove(callback)
            except ValueError:
                logger.debug("Callback %r was not subscribed to %s", callback, WatcherEvent(event).value)

    def publish(self, event: WatcherEvent, payload: Any = None) -> None:
        with self._lock:
            callbacks = list(self._subscribers[event])
        logger.debug("Publishing %s to %s subscriber(s)", event.value, len(callbacks))
        for callback in callbacks:
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Subscriber %r failed for %s", callback, event.value)
