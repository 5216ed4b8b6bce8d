"""Durable storage for the last settled directory snapshot."""
from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List

from .events import FileEntry, Snapshot
from .paths import SNAPSHOT_FILENAME

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class PersistError(Exception):
    """Raised when the snapshot cache cannot be read or written."""


class SnapshotStore:
    """Reads and writes a snapshot as a JSON document inside ``cache_dir``."""

    def __init__(self, cache_dir: Path, filename: str = SNAPSHOT_FILENAME):
        self._cache_dir = cache_dir
        self._path = cache_dir / filename

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> Snapshot:
        """Return the persisted snapshot, or an empty one if nothing is cached."""

        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise PersistError(f"Unable to read snapshot cache {self._path}: {exc}") from exc

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise PersistError(f"Snapshot cache {self._path} is not valid JSON: {exc}") from exc
        return _decode(data, source=self._path)

    def save(self, snapshot: Snapshot) -> None:
        """Atomically replace the cached snapshot."""

        payload = json.dumps(_encode(snapshot), indent=2, sort_keys=True)
        tmppath = None
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                prefix=".snapshot-",
                dir=str(self._cache_dir),
                delete=False,
            ) as tmp:
                tmppath = Path(tmp.name)
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(str(tmppath), str(self._path))
        except OSError as exc:
            if tmppath is not None:
                with contextlib.suppress(OSError):
                    tmppath.unlink()
            raise PersistError(f"Unable to write snapshot cache {self._path}: {exc}") from exc
        logger.debug("Persisted %s entries to %s", len(snapshot), self._path)

    def clear(self) -> None:
        """Forget all persisted state."""

        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PersistError(f"Unable to remove snapshot cache {self._path}: {exc}") from exc
        logger.info("Cleared snapshot cache %s", self._path)


def _encode(snapshot: Snapshot) -> Dict[str, Any]:
    entries = [
        {"name": entry.name, "size": entry.size, "modified_at": entry.modified_at}
        for entry in sorted(snapshot.values(), key=lambda entry: entry.name)
    ]
    return {"version": FORMAT_VERSION, "entries": entries}


def _decode(data: Any, *, source: Path) -> Snapshot:
    if not isinstance(data, dict) or data.get("version") != FORMAT_VERSION:
        raise PersistError(f"Snapshot cache {source} has an unsupported format")
    entries: List[Any] = data.get("entries", [])
    if not isinstance(entries, list):
        raise PersistError(f"Snapshot cache {source}: 'entries' must be a list")

    snapshot: Snapshot = {}
    for index, item in enumerate(entries):
        try:
            entry = FileEntry(
                name=str(item["name"]),
                size=int(item["size"]),
                modified_at=float(item["modified_at"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistError(f"Snapshot cache {source}: entries[{index}] is malformed") from exc
        snapshot[entry.name] = entry
    return snapshot
