"""
Unit tests for timestamp-based staleness checks.
"""

import os

import pytest

from kiln.build.staleness import needs_rebuild

BASE_NS = 1_700_000_000 * 10**9


def touch(path, offset_s: int):
    """Create `path` and set its mtime to BASE + offset seconds."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()
    ns = BASE_NS + offset_s * 10**9
    os.utime(path, ns=(ns, ns))
    return path


class TestNeedsRebuild:
    """Test suite for needs_rebuild."""

    def test_missing_output(self, tmp_path):
        source = touch(tmp_path / "a.cpp", 0)
        assert needs_rebuild(tmp_path / "a.o", [source]) is True

    def test_output_newer_than_inputs(self, tmp_path):
        source = touch(tmp_path / "a.cpp", 0)
        header = touch(tmp_path / "a.h", 1)
        output = touch(tmp_path / "a.o", 2)
        assert needs_rebuild(output, [source, header]) is False

    def test_input_newer_than_output(self, tmp_path):
        source = touch(tmp_path / "a.cpp", 0)
        output = touch(tmp_path / "a.o", 1)
        header = touch(tmp_path / "a.h", 2)
        assert needs_rebuild(output, [source, header]) is True

    def test_equal_timestamps_are_up_to_date(self, tmp_path):
        source = touch(tmp_path / "a.cpp", 5)
        output = touch(tmp_path / "a.o", 5)
        assert needs_rebuild(output, [source]) is False

    def test_no_inputs(self, tmp_path):
        output = touch(tmp_path / "a.o", 0)
        assert needs_rebuild(output, []) is False

    def test_missing_input_raises(self, tmp_path):
        output = touch(tmp_path / "a.o", 0)
        with pytest.raises(FileNotFoundError):
            needs_rebuild(output, [tmp_path / "gone.h"])

    def test_accepts_strings(self, tmp_path):
        source = touch(tmp_path / "a.cpp", 3)
        output = touch(tmp_path / "a.o", 1)
        assert needs_rebuild(str(output), [str(source)]) is True
