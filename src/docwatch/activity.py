"""Debounced detection of in-flight copy operations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Dict, FrozenSet, Optional, Sequence

from .events import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_STABILITY_TICKS = 2
DEFAULT_MARKER_PATTERNS = ("*.part", "*.partial", "*.download", "*.crdownload", "*.tmp")


@dataclass
class ActivityState:
    """Size history for a single entry that has not settled yet."""

    last_observed_size: int
    stable_tick_count: int = 0


@dataclass(frozen=True)
class ActivityReport:
    """Outcome of one detector update."""

    is_active: bool
    stabilized: FrozenSet[str] = field(default_factory=frozenset)
    in_progress: FrozenSet[str] = field(default_factory=frozenset)


class CopyActivityDetector:
    """Tracks entry sizes across ticks and reports whether a transfer is running.

    An entry is in progress from the tick it first appears (or changes size)
    until its size has stayed the same for ``stability_ticks`` consecutive
    ticks. Files matching a marker pattern keep the detector active for as
    long as they exist.
    """

    def __init__(
        self,
        stability_ticks: int = DEFAULT_STABILITY_TICKS,
        marker_patterns: Optional[Sequence[str]] = None,
    ):
        if stability_ticks < 1:
            raise ValueError("stability_ticks must be at least 1")
        self._stability_ticks = stability_ticks
        self._marker_patterns = tuple(DEFAULT_MARKER_PATTERNS if marker_patterns is None else marker_patterns)
        self._tracking: Dict[str, ActivityState] = {}
        self._settled: Dict[str, int] = {}

    @property
    def tracked(self) -> Dict[str, ActivityState]:
        return dict(self._tracking)

    def prime(self, snapshot: Snapshot) -> None:
        """Treat every entry of ``snapshot`` as already settled."""

        for name, entry in snapshot.items():
            if name in self._tracking or self.is_marker(name):
                continue
            self._settled[name] = entry.size

    def reset(self) -> None:
        self._tracking.clear()
        self._settled.clear()

    def is_marker(self, name: str) -> bool:
        return any(fnmatch(name, pat) for pat in self._marker_patterns)

    def update(self, current: Snapshot) -> ActivityReport:
        for name in [name for name in self._tracking if name not in current]:
            del self._tracking[name]
        for name in [name for name in self._settled if name not in current]:
            del self._settled[name]

        stabilized = set()
        in_progress = set()
        for name, entry in current.items():
            if self.is_marker(name):
                in_progress.add(name)
                continue

            settled_size = self._settled.get(name)
            if settled_size is not None:
                if settled_size == entry.size:
                    continue
                # Settled file started changing again.
                del self._settled[name]

            state = self._tracking.get(name)
            if state is None or state.last_observed_size != entry.size:
                self._tracking[name] = ActivityState(last_observed_size=entry.size)
                in_progress.add(name)
                continue

            state.stable_tick_count += 1
            if state.stable_tick_count >= self._stability_ticks:
                del self._tracking[name]
                self._settled[name] = entry.size
                stabilized.add(name)
            else:
                in_progress.add(name)

        if in_progress:
            logger.debug("Copy activity in progress for %s", sorted(in_progress))
        return ActivityReport(
            is_active=bool(in_progress),
            stabilized=frozenset(stabilized),
            in_progress=frozenset(in_progress),
        )
