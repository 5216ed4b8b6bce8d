"""Cache location resolution."""
from __future__ import annotations

from pathlib import Path

from platformdirs import user_cache_dir

APP_NAME = "docwatch"
SNAPSHOT_FILENAME = "snapshot.json"


def default_cache_dir() -> Path:
    """Return the per-user cache directory used when none is configured."""
    return Path(user_cache_dir(APP_NAME, appauthor=False))
