"""Test directory scanning."""

from pathlib import Path
from unittest.mock import patch

import pytest

from docwatch.scanner import AccessError, DirectoryScanner, matches_patterns

from conftest import write_file


class TestScan:

    def test_reads_size_and_mtime(self, watch_dir):
        write_file(watch_dir, "a.txt", 12, mtime=1700000000.0)
        snapshot = DirectoryScanner().scan(watch_dir)
        assert list(snapshot) == ["a.txt"]
        assert snapshot["a.txt"].size == 12
        assert snapshot["a.txt"].modified_at == 1700000000.0

    def test_empty_directory(self, watch_dir):
        assert DirectoryScanner().scan(watch_dir) == {}

    def test_not_recursive(self, watch_dir):
        sub = watch_dir / "nested"
        sub.mkdir()
        write_file(sub, "inner.txt", 3)
        write_file(watch_dir, "top.txt", 3)
        assert list(DirectoryScanner().scan(watch_dir)) == ["top.txt"]

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(AccessError, match="does not exist"):
            DirectoryScanner().scan(tmp_path / "missing")

    def test_file_instead_of_directory_raises(self, tmp_path):
        path = write_file(tmp_path, "file.txt", 1)
        with pytest.raises(AccessError):
            DirectoryScanner().scan(path)

    def test_listing_failure_raises(self, watch_dir):
        with patch.object(Path, "iterdir", side_effect=PermissionError("denied")):
            with pytest.raises(AccessError, match="denied"):
                DirectoryScanner().scan(watch_dir)

    def test_entry_vanishing_before_stat_is_skipped(self, watch_dir):
        write_file(watch_dir, "keep.txt", 1)
        write_file(watch_dir, "gone.txt", 1)
        real_stat = Path.stat

        def flaky_stat(self, *args, **kwargs):
            if self.name == "gone.txt":
                raise FileNotFoundError(self)
            return real_stat(self, *args, **kwargs)

        with patch.object(Path, "is_file", return_value=True), patch.object(Path, "stat", flaky_stat):
            snapshot = DirectoryScanner().scan(watch_dir)
        assert list(snapshot) == ["keep.txt"]

    def test_patterns_filter_entries(self, watch_dir):
        write_file(watch_dir, ".DS_Store", 1)
        write_file(watch_dir, "a.pdf", 1)
        write_file(watch_dir, "b.txt", 1)
        scanner = DirectoryScanner(include_patterns=["*.pdf", "*.txt"], exclude_patterns=[".*", "b.*"])
        assert list(scanner.scan(watch_dir)) == ["a.pdf"]


class TestMatchesPatterns:

    def test_no_patterns_matches_everything(self):
        assert matches_patterns("anything", [], [])

    def test_exclude_wins(self):
        assert not matches_patterns("a.txt", ["*.txt"], ["a.*"])

    def test_include_required_when_given(self):
        assert not matches_patterns("a.pdf", ["*.txt"], [])
