"""Snapshot comparison: classify presence changes into adds, renames and deletes."""
from __future__ import annotations

import logging
from typing import Dict, List

from .events import ChangeSet, FileEntry, Snapshot

logger = logging.getLogger(__name__)


def diff_snapshots(previous: Snapshot, current: Snapshot) -> ChangeSet:
    """Compare two settled snapshots.

    A name that disappeared and a name that appeared with the same byte size
    are paired as a rename. Modification time is not consulted, since a copy
    does not preserve it reliably. Candidates are paired in name order on
    both sides, so the result is deterministic even when several files share
    a size; the pairing is a guess in that case. Size changes under an
    unchanged name are not reported.
    """

    added_candidates = [current[name] for name in current if name not in previous]
    deleted_candidates = [previous[name] for name in previous if name not in current]

    by_size: Dict[int, List[FileEntry]] = {}
    for entry in sorted(added_candidates, key=_name_key):
        by_size.setdefault(entry.size, []).append(entry)

    renamed: Dict[str, str] = {}
    deleted: List[str] = []
    for entry in sorted(deleted_candidates, key=_name_key):
        matches = by_size.get(entry.size)
        if matches:
            renamed[entry.name] = matches.pop(0).name
        else:
            deleted.append(entry.name)

    rename_targets = set(renamed.values())
    added = sorted(entry.name for entry in added_candidates if entry.name not in rename_targets)

    changes = ChangeSet(added=tuple(added), renamed=renamed, deleted=tuple(sorted(deleted)))
    if not changes.is_empty():
        logger.debug(
            "Diff: %s added, %s renamed, %s deleted",
            len(changes.added),
            len(changes.renamed),
            len(changes.deleted),
        )
    return changes


def _name_key(entry: FileEntry) -> str:
    return entry.name
