"""Input path resolution.

Expands one input path into the ordered list of member files to read. A path
is either a regular file, a directory walked recursively, or a manifest file
(``.list``) whose lines name further files.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING

from recstream.compression import COMPRESSED_EXTENSION
from recstream.exceptions import PathNotFoundError, ResolveError
from recstream.types import PathKind

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "MANIFEST_EXTENSION",
    "classify_path",
    "normalize_extension",
    "read_manifest",
    "resolve_paths",
]

logger = logging.getLogger(__name__)

MANIFEST_EXTENSION = ".list"


def normalize_extension(ext: str) -> str:
    """Return *ext* with exactly one leading dot (``"json"`` → ``".json"``)."""
    ext = ext.strip()
    if not ext:
        raise ResolveError("Empty file extension")
    return ext if ext.startswith(".") else f".{ext}"


def _stat(path: Path) -> os.stat_result:
    try:
        return path.stat()
    except FileNotFoundError as e:
        raise PathNotFoundError(f"Path does not exist: {path}") from e
    except OSError as e:
        raise ResolveError(f"Cannot access {path}: {e}") from e


def classify_path(path: str | Path, manifest_extension: str = MANIFEST_EXTENSION) -> PathKind:
    """Classify *path* as a directory, a manifest, or a single file.

    Raises:
        PathNotFoundError: If *path* does not exist.
        ResolveError: If *path* cannot be stat'ed.
    """
    path = Path(path)
    st = _stat(path)
    if stat.S_ISDIR(st.st_mode):
        return PathKind.DIRECTORY
    if path.suffix == normalize_extension(manifest_extension):
        return PathKind.MANIFEST
    return PathKind.FILE


def read_manifest(path: Path) -> tuple[Path, ...]:
    """Read a manifest file: one literal path per line, blank lines skipped.

    Lines are taken verbatim apart from the line terminator; they are not
    checked for existence or extension.
    """
    files: list[Path] = []
    try:
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.rstrip("\n")
                if line:
                    files.append(Path(line))
    except (OSError, UnicodeDecodeError) as e:
        raise ResolveError(f"Failed to read manifest {path}: {e}") from e
    logger.debug("Manifest %s lists %d files", path, len(files))
    return tuple(files)


def _is_allowed(name: str, allowed: frozenset[str], compressed_extension: str) -> bool:
    if name.startswith("."):
        return False
    if not allowed:
        return True
    ext = os.path.splitext(name)[1]
    return ext == compressed_extension or ext in allowed


def _walk_directory(
    root: Path,
    allowed: frozenset[str],
    compressed_extension: str,
) -> tuple[Path, ...]:
    """Walk *root* in lexicographic order and apply the member filter."""

    def _on_error(err: OSError) -> None:
        logger.warning("Skipping unreadable entry under %s: %s", root, err)

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            candidate = Path(dirpath) / name
            if candidate.is_symlink():
                continue
            if _is_allowed(name, allowed, compressed_extension):
                files.append(candidate)
    return tuple(files)


def resolve_paths(
    path: str | Path,
    extensions: Iterable[str] = (),
    *,
    manifest_extension: str = MANIFEST_EXTENSION,
    compressed_extension: str = COMPRESSED_EXTENSION,
) -> tuple[Path, ...]:
    """Resolve an input path into an ordered tuple of member files.

    Args:
        path: A file, a directory, or a manifest file.
        extensions: Extra plain extensions accepted when walking a
            directory. The compressed extension is always accepted; with no
            extra extensions every non-dotfile is accepted.
        manifest_extension: Extension that marks a manifest file.
        compressed_extension: Extension that marks a compressed member.

    Returns:
        Member paths. Directory entries come in lexicographic walk order;
        manifest entries in listed order.

    Raises:
        PathNotFoundError: If *path* does not exist.
        ResolveError: If *path* or a manifest cannot be read.
    """
    path = Path(path)
    kind = classify_path(path, manifest_extension)
    compressed_extension = normalize_extension(compressed_extension)

    if kind is PathKind.DIRECTORY:
        allowed = frozenset(normalize_extension(e) for e in extensions)
        files = _walk_directory(path, allowed, compressed_extension)
    elif kind is PathKind.MANIFEST:
        files = read_manifest(path)
    else:
        files = (path,)

    logger.info("Resolved %s (%s) to %d files", path, kind.value, len(files))
    return files
