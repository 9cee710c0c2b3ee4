"""Shared fixtures for recstream tests."""

from __future__ import annotations

import gzip
import json
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path


def dump_records(path: Path, records: Iterable[Any]) -> Path:
    """Write *records* one JSON value per line, gzipped when *path* ends in .gz.

    Deliberately independent of ``recstream.writer`` so readers are tested
    against plain stdlib output.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = "".join(json.dumps(r) + "\n" for r in records).encode("utf-8")
    if path.suffix == ".gz":
        with gzip.open(path, "wb") as f:
            f.write(payload)
    else:
        path.write_bytes(payload)
    return path


def make_records(tag: str, n: int) -> list[dict[str, Any]]:
    """Records with a name, a counter and a word list that grows with the counter."""
    return [
        {"name": f"{tag} object # {i}", "n": i, "words": [f"numero {j}" for j in range(i + 1)]}
        for i in range(n)
    ]


@pytest.fixture
def write_file() -> Callable[[Path, Iterable[Any]], Path]:
    return dump_records


@pytest.fixture
def mixed_dir(tmp_path: Path) -> Path:
    """a.json (2 records), b.json.gz (3 records, gzipped), c.json (empty)."""
    root = tmp_path / "mixed"
    dump_records(root / "a.json", make_records("a", 2))
    dump_records(root / "b.json.gz", make_records("b", 3))
    dump_records(root / "c.json", [])
    return root


@pytest.fixture
def many_files(tmp_path: Path) -> list[Path]:
    """Ten files of ten records each, alternating plain and gzipped."""
    files = []
    for k in range(10):
        suffix = ".json.gz" if k % 2 else ".json"
        files.append(
            dump_records(tmp_path / "many" / f"testfile-{k}{suffix}", make_records(f"file {k}", 10))
        )
    return files
