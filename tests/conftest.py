"""Shared test fixtures and utilities."""

import os
from pathlib import Path
from typing import Any, List, Tuple

import pytest

from docwatch.config import WatcherConfig
from docwatch.events import EventBus, WatcherEvent
from docwatch.scheduler import ManualScheduler
from docwatch.watcher import WatcherController


class EventRecorder:
    """Collects everything published on a bus."""

    def __init__(self, bus: EventBus):
        self.events: List[Tuple[WatcherEvent, Any]] = []
        for event in WatcherEvent:
            bus.subscribe(event, self)

    def __call__(self, event: WatcherEvent, payload: Any) -> None:
        self.events.append((event, payload))

    def of(self, event: WatcherEvent) -> List[Any]:
        return [payload for recorded, payload in self.events if recorded is event]

    def names(self) -> List[WatcherEvent]:
        return [event for event, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def watch_dir(tmp_path):
    path = tmp_path / "Documents"
    path.mkdir()
    return path


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "Caches"


@pytest.fixture
def watcher_config(watch_dir, cache_dir):
    return WatcherConfig(watch_path=watch_dir, cache_dir=cache_dir, poll_interval=1.0, stability_ticks=2)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_watcher(watcher_config, scheduler):
    """Factory for controllers driven by the virtual clock."""
    created = []

    def factory(**kwargs):
        watcher = WatcherController(watcher_config, scheduler=scheduler, **kwargs)
        created.append(watcher)
        return watcher

    yield factory

    for watcher in created:
        watcher.stop()


@pytest.fixture
def watcher(make_watcher):
    return make_watcher()


@pytest.fixture
def recorder(watcher):
    return EventRecorder(watcher.bus)


def write_file(directory: Path, name: str, size: int, mtime: float = None) -> Path:
    path = directory / name
    path.write_bytes(b"x" * size)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def settle(watcher: WatcherController, ticks: int = 3) -> None:
    """Tick enough times for unchanged files to pass the stability threshold."""
    for _ in range(ticks):
        watcher.tick()
