"""Tests for recstream.multi module."""

from __future__ import annotations

import gzip
from typing import TYPE_CHECKING

import pytest

import recstream.multi as multi_module
from recstream.exceptions import DecompressionError, StreamError
from recstream.multi import MultiReader

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def opened(monkeypatch: pytest.MonkeyPatch) -> list:
    """Record every member stream MultiReader opens."""
    streams: list = []
    real_open = multi_module.open_member

    def _tracking_open(path, compressed_extension=".gz"):
        stream = real_open(path, compressed_extension)
        streams.append(stream)
        return stream

    monkeypatch.setattr(multi_module, "open_member", _tracking_open)
    return streams


def _write(path: Path, data: bytes) -> Path:
    path.write_bytes(gzip.compress(data) if path.suffix == ".gz" else data)
    return path


class TestMultiReaderConcatenation:
    def test_reads_all_members_in_order(self, tmp_path: Path):
        files = [
            _write(tmp_path / "1.txt", b"alpha-"),
            _write(tmp_path / "2.txt.gz", b"beta-"),
            _write(tmp_path / "3.txt", b"gamma"),
        ]
        with MultiReader(files) as reader:
            assert reader.read() == b"alpha-beta-gamma"

    def test_tiny_reads_cross_boundaries(self, tmp_path: Path):
        files = [
            _write(tmp_path / "1.txt.gz", b"abc"),
            _write(tmp_path / "2.txt", b"def"),
        ]
        reader = MultiReader(files)
        pieces = []
        while piece := reader.read(2):
            pieces.append(piece)
        reader.close()
        assert b"".join(pieces) == b"abcdef"
        assert all(pieces)

    def test_empty_members_are_skipped(self, tmp_path: Path):
        files = [
            _write(tmp_path / "1.txt", b""),
            _write(tmp_path / "2.txt", b"data"),
            _write(tmp_path / "3.txt.gz", b""),
            _write(tmp_path / "4.txt", b""),
        ]
        with MultiReader(files) as reader:
            assert reader.read(100) == b"data"
            assert reader.read(100) == b""

    def test_boundary_never_reported_as_end(self, tmp_path: Path):
        files = [_write(tmp_path / f"{i}.txt", b"x") for i in range(5)]
        reader = MultiReader(files)
        buf = bytearray(1)
        reads = [reader.readinto(buf) for _ in range(5)]
        assert reads == [1, 1, 1, 1, 1]
        assert reader.readinto(buf) == 0
        reader.close()

    def test_files_property(self, tmp_path: Path):
        path = _write(tmp_path / "a.txt", b"")
        assert MultiReader([str(path)]).files == (path,)


class TestMultiReaderEndOfStream:
    def test_empty_file_list(self):
        reader = MultiReader([])
        assert reader.read(10) == b""
        assert reader.read() == b""
        reader.close()

    def test_read_after_end_keeps_returning_empty(self, tmp_path: Path, opened: list):
        reader = MultiReader([_write(tmp_path / "a.txt", b"abc")])
        assert reader.read() == b"abc"
        assert reader.read(10) == b""
        assert reader.read(10) == b""
        assert len(opened) == 1
        reader.close()

    def test_member_closed_at_end(self, tmp_path: Path, opened: list):
        files = [_write(tmp_path / "a.txt", b"abc"), _write(tmp_path / "b.txt.gz", b"def")]
        reader = MultiReader(files)
        reader.read()
        assert len(opened) == 2
        assert all(s.closed for s in opened)
        assert reader.current_path is None
        reader.close()

    def test_read_after_close_returns_empty(self, tmp_path: Path, opened: list):
        reader = MultiReader([_write(tmp_path / "a.txt", b"abc")])
        reader.close()
        assert reader.read(10) == b""
        assert reader.readinto(bytearray(4)) == 0
        assert opened == []

    def test_close_mid_stream_releases_member(self, tmp_path: Path, opened: list):
        files = [_write(tmp_path / "a.txt", b"abcdef"), _write(tmp_path / "b.txt", b"ghi")]
        reader = MultiReader(files)
        assert reader.read(2) == b"ab"
        assert reader.current_path == files[0]
        reader.close()
        assert opened[0].closed
        assert reader.read(10) == b""
        assert len(opened) == 1

    def test_close_twice_is_harmless(self, tmp_path: Path):
        reader = MultiReader([_write(tmp_path / "a.txt", b"abc")])
        reader.read(1)
        reader.close()
        reader.close()


class TestMultiReaderErrors:
    def test_missing_member_raises_stream_error(self, tmp_path: Path, opened: list):
        files = [_write(tmp_path / "a.txt", b"abc"), tmp_path / "missing.txt"]
        reader = MultiReader(files)
        assert reader.read(3) == b"abc"
        with pytest.raises(StreamError, match="missing.txt"):
            reader.read(3)
        assert all(s.closed for s in opened)
        reader.close()

    def test_corrupt_member_closed_and_error_propagated(self, tmp_path: Path, opened: list):
        bad = tmp_path / "bad.txt.gz"
        bad.write_bytes(b"not gzip at all")
        reader = MultiReader([_write(tmp_path / "a.txt", b"ok"), bad])
        assert reader.read(2) == b"ok"
        with pytest.raises(DecompressionError):
            reader.read(10)
        assert all(s.closed for s in opened)
        assert reader.current_path is None
        reader.close()

    def test_retry_after_open_failure_reopens_same_member(self, tmp_path: Path):
        late = tmp_path / "late.txt"
        reader = MultiReader([late])
        with pytest.raises(StreamError):
            reader.read(1)
        late.write_bytes(b"now here")
        assert reader.read() == b"now here"
        reader.close()
