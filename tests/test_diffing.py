"""Test snapshot diffing and rename classification."""

from docwatch.diffing import diff_snapshots
from docwatch.events import ChangeSet, FileEntry


def snap(*entries):
    return {entry.name: entry for entry in entries}


def entry(name, size, modified_at=1000.0):
    return FileEntry(name=name, size=size, modified_at=modified_at)


class TestPresenceChanges:
    """Plain additions and deletions."""

    def test_identical_snapshots_yield_empty_changeset(self):
        """Diffing a snapshot against itself reports nothing."""
        s = snap(entry("a.txt", 100), entry("b.txt", 200))
        changes = diff_snapshots(s, s)
        assert changes.is_empty()
        assert changes == ChangeSet()

    def test_empty_to_empty(self):
        assert diff_snapshots({}, {}).is_empty()

    def test_additions_sorted_by_name(self):
        """New files are reported in name order."""
        changes = diff_snapshots({}, snap(entry("c.txt", 3), entry("a.txt", 1), entry("b.txt", 2)))
        assert changes.added == ("a.txt", "b.txt", "c.txt")
        assert changes.renamed == {}
        assert changes.deleted == ()

    def test_deletions(self):
        changes = diff_snapshots(snap(entry("a.txt", 1), entry("b.txt", 2)), snap(entry("b.txt", 2)))
        assert changes.deleted == ("a.txt",)
        assert changes.added == ()

    def test_in_place_modification_is_not_reported(self):
        """Same name with a different size is not a presence change."""
        changes = diff_snapshots(snap(entry("a.txt", 100)), snap(entry("a.txt", 500, modified_at=2000.0)))
        assert changes.is_empty()


class TestRenameDetection:
    """Pairing deletions with additions of the same size."""

    def test_equal_size_is_rename(self):
        changes = diff_snapshots(snap(entry("a.txt", 100)), snap(entry("b.txt", 100)))
        assert changes.renamed == {"a.txt": "b.txt"}
        assert changes.added == ()
        assert changes.deleted == ()

    def test_different_size_is_delete_plus_add(self):
        changes = diff_snapshots(snap(entry("a.txt", 100)), snap(entry("b.txt", 200)))
        assert changes.renamed == {}
        assert changes.deleted == ("a.txt",)
        assert changes.added == ("b.txt",)

    def test_modification_time_is_ignored(self):
        """A copy may change mtime; size alone decides."""
        changes = diff_snapshots(
            snap(entry("a.txt", 100, modified_at=1.0)),
            snap(entry("b.txt", 100, modified_at=99999.0)),
        )
        assert changes.renamed == {"a.txt": "b.txt"}

    def test_rename_targets_never_in_added_or_deleted(self):
        previous = snap(entry("a", 10), entry("b", 20), entry("c", 30))
        current = snap(entry("x", 10), entry("y", 25), entry("c", 30))
        changes = diff_snapshots(previous, current)

        assert changes.renamed == {"a": "x"}
        assert changes.deleted == ("b",)
        assert changes.added == ("y",)
        for old, new in changes.renamed.items():
            assert old not in changes.deleted
            assert new not in changes.added

    def test_size_collision_pairs_in_name_order(self):
        previous = snap(entry("b", 50), entry("a", 50))
        current = snap(entry("z", 50), entry("y", 50))
        changes = diff_snapshots(previous, current)
        assert changes.renamed == {"a": "y", "b": "z"}

    def test_size_collision_ignores_modification_time(self):
        """Pairing is by name even when mtimes suggest the opposite order."""
        previous = snap(entry("a", 50, modified_at=20.0), entry("b", 50, modified_at=10.0))
        current = snap(entry("y", 50, modified_at=100.0), entry("z", 50, modified_at=1.0))
        changes = diff_snapshots(previous, current)
        assert changes.renamed == {"a": "y", "b": "z"}

    def test_more_deletions_than_matching_additions(self):
        previous = snap(entry("a", 50, modified_at=2.0), entry("b", 50, modified_at=1.0))
        current = snap(entry("c", 50))
        changes = diff_snapshots(previous, current)
        assert changes.renamed == {"a": "c"}
        assert changes.deleted == ("b",)
        assert changes.added == ()
