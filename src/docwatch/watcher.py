"""Polling controller: scan, debounce, diff, publish, persist."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .activity import CopyActivityDetector
from .config import WatcherConfig
from .diffing import diff_snapshots
from .events import EventBus, Snapshot, WatcherEvent
from .scanner import AccessError, DirectoryScanner
from .scheduler import ScheduledTask, Scheduler, ThreadScheduler
from .store import PersistError, SnapshotStore

logger = logging.getLogger(__name__)


class WatcherState(str, Enum):
    """Lifecycle states of a :class:`WatcherController`."""

    STOPPED = "stopped"
    PAUSED = "paused"
    IDLE = "idle"
    LOADING = "loading"


@dataclass
class WatcherStats:
    """Counters emitted by the watcher for observability."""

    ticks: int = 0
    settled_ticks: int = 0
    skipped_ticks: int = 0
    events_published: int = 0
    persist_failures: int = 0


class WatcherController:
    """Watches one directory and publishes classified changes to an event bus.

    The controller owns the poll timer and is the only component that
    mutates watcher state. Ticks are serialized: a tick that starts while
    another is still running returns without doing anything.
    """

    def __init__(
        self,
        config: WatcherConfig,
        bus: Optional[EventBus] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        store: Optional[SnapshotStore] = None,
        scanner: Optional[DirectoryScanner] = None,
        detector: Optional[CopyActivityDetector] = None,
    ):
        self._config = config
        self.bus = bus or EventBus()
        self._scheduler = scheduler or ThreadScheduler()
        self._store = store or SnapshotStore(config.cache_dir)
        self._scanner = scanner or DirectoryScanner(config.include_patterns, config.exclude_patterns)
        self._detector = detector or CopyActivityDetector(config.stability_ticks, config.marker_patterns)

        self._state_lock = threading.Lock()
        self._tick_guard = threading.Lock()
        self._task: Optional[ScheduledTask] = None
        self._running = False
        self._paused = False
        self._loading = False
        self._reset_pending = False
        self._persist_pending = False
        self._previous: Snapshot = {}
        self.stats = WatcherStats()

    @property
    def watch_path(self) -> Path:
        return self._config.watch_path

    @property
    def state(self) -> WatcherState:
        if self._paused:
            return WatcherState.PAUSED
        if not self._running:
            return WatcherState.STOPPED
        return WatcherState.LOADING if self._loading else WatcherState.IDLE

    @property
    def is_loading(self) -> bool:
        return self.state is WatcherState.LOADING

    @property
    def previous_snapshot(self) -> Snapshot:
        return dict(self._previous)

    def start(self) -> None:
        """Begin polling, or resume after :meth:`pause`. No-op when already running."""

        with self._state_lock:
            if self._running and not self._paused:
                return
            if self._paused:
                logger.info("Resuming watcher for %s", self._config.watch_path)
                self._paused = False
            else:
                logger.info("Starting watcher for %s", self._config.watch_path)
                self._previous = self._load_previous()
                self._persist_pending = False
                self._loading = False
                self._reset_pending = False
                self._detector.reset()
                self._detector.prime(self._previous)
                self._running = True
            self._task = self._scheduler.schedule(self._config.poll_interval, self.tick)

    def pause(self) -> None:
        """Halt the timer but keep the in-memory snapshot and activity state."""

        with self._state_lock:
            if not self._running or self._paused:
                return
            self._paused = True
            task, self._task = self._task, None
        self._cancel(task)
        logger.info("Watcher paused for %s", self._config.watch_path)

    def stop(self) -> None:
        """Halt the timer and discard activity tracking. The persisted snapshot is kept."""

        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self._paused = False
            task, self._task = self._task, None
            self._reset_pending = True
        self._cancel(task)

        if self._tick_guard.acquire(blocking=False):
            try:
                self._apply_pending_reset()
            finally:
                self._tick_guard.release()
        logger.info(
            "Watcher stopped for %s after %s ticks, %s events",
            self._config.watch_path,
            self.stats.ticks,
            self.stats.events_published,
        )

    @staticmethod
    def clear_cached_data(cache_dir: Path) -> None:
        """Delete the persisted snapshot.

        A running watcher notices on its next settled tick and reports every
        file currently present as added.
        """

        SnapshotStore(cache_dir).clear()

    def tick(self) -> None:
        """Run one poll cycle."""

        if not self._tick_guard.acquire(blocking=False):
            logger.debug("Previous tick still running; skipping")
            self.stats.skipped_ticks += 1
            return
        try:
            if self._running and not self._paused:
                self._run_cycle()
        finally:
            self._apply_pending_reset()
            self._tick_guard.release()

    def _run_cycle(self) -> None:
        self.stats.ticks += 1
        try:
            current = self._scanner.scan(self._config.watch_path)
        except AccessError as exc:
            logger.warning("Skipping tick: %s", exc)
            return

        report = self._detector.update(current)
        if report.is_active:
            if not self._loading:
                self._loading = True
                logger.info("Copy activity detected in %s", self._config.watch_path)
                self._publish(WatcherEvent.DID_START_LOADING_FILES)
            return

        if self._loading:
            self._loading = False
            logger.info("Copy activity finished in %s", self._config.watch_path)
            self._publish(WatcherEvent.DID_END_LOADING_FILES)

        self.stats.settled_ticks += 1
        if self._previous and not self._persist_pending and not self._store.exists():
            logger.info("Snapshot cache was cleared; treating %s as new", self._config.watch_path)
            self._previous = {}

        changes = diff_snapshots(self._previous, current)
        if changes.added:
            self._publish(WatcherEvent.FILES_ADDED, list(changes.added))
        if changes.renamed:
            self._publish(WatcherEvent.FILES_RENAMED, dict(changes.renamed))
        if changes.deleted:
            self._publish(WatcherEvent.FILES_DELETED, list(changes.deleted))

        if current != self._previous or self._persist_pending:
            self._persist(current)
        self._previous = current

    def _persist(self, snapshot: Snapshot) -> None:
        try:
            self._store.save(snapshot)
        except PersistError as exc:
            self.stats.persist_failures += 1
            self._persist_pending = True
            logger.error("Failed to persist snapshot, retrying next tick: %s", exc)
            return
        self._persist_pending = False

    def _load_previous(self) -> Snapshot:
        try:
            return self._store.load()
        except PersistError as exc:
            logger.warning("Ignoring unreadable snapshot cache: %s", exc)
            return {}

    def _publish(self, event: WatcherEvent, payload=None) -> None:
        self.stats.events_published += 1
        self.bus.publish(event, payload)

    def _apply_pending_reset(self) -> None:
        # Runs with the tick guard held, after any in-flight tick has finished.
        if not self._reset_pending or self._running:
            return
        self._reset_pending = False
        self._detector.reset()
        if self._loading:
            self._loading = False
            self._publish(WatcherEvent.DID_END_LOADING_FILES)

    @staticmethod
    def _cancel(task: Optional[ScheduledTask]) -> None:
        if task is not None:
            task.cancel()
