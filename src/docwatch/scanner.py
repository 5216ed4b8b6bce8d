"""Single-pass directory listing with per-entry size and modification time."""
from __future__ import annotations

import logging
from fnmatch import fnmatch
from pathlib import Path
from typing import List, Optional, Sequence

from .events import FileEntry, Snapshot

logger = logging.getLogger(__name__)


class AccessError(Exception):
    """Raised when the watched directory cannot be read."""


class DirectoryScanner:
    """Reads the top level of a directory into a snapshot."""

    def __init__(
        self,
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
    ):
        self._include_patterns: List[str] = list(include_patterns or [])
        self._exclude_patterns: List[str] = list(exclude_patterns or [])

    def scan(self, path: Path) -> Snapshot:
        if not path.is_dir():
            raise AccessError(f"Watched directory {path} does not exist or is not a directory")
        try:
            children = list(path.iterdir())
        except OSError as exc:
            raise AccessError(f"Unable to list {path}: {exc}") from exc

        results: Snapshot = {}
        for child in children:
            if not matches_patterns(child.name, self._include_patterns, self._exclude_patterns):
                continue
            try:
                if not child.is_file():
                    continue
                stat = child.stat()
            except FileNotFoundError:
                # Removed between listing and stat; absent this tick.
                continue
            except OSError as exc:
                raise AccessError(f"Unable to stat {child}: {exc}") from exc
            results[child.name] = FileEntry(name=child.name, size=stat.st_size, modified_at=stat.st_mtime)
        logger.debug("Scanned %s: %s entries", path, len(results))
        return results


def matches_patterns(name: str, include_patterns: Sequence[str], exclude_patterns: Sequence[str]) -> bool:
    if exclude_patterns and any(fnmatch(name, pat) for pat in exclude_patterns):
        return False

    if not include_patterns:
        return True

    return any(fnmatch(name, pat) for pat in include_patterns)
