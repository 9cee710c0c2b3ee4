"""Transparent per-file compression.

Member files whose name ends in the compressed extension (``.gz``) are
gzip-decompressed on read and gzip-compressed on write. Every other file is
passed through untouched.
"""

from __future__ import annotations

import gzip
import io
import logging
import zlib
from pathlib import Path
from typing import TYPE_CHECKING

from recstream.exceptions import DecompressionError, StreamError

if TYPE_CHECKING:
    from typing import BinaryIO

__all__ = [
    "COMPRESSED_EXTENSION",
    "GzipReader",
    "is_compressed",
    "open_for_write",
    "open_member",
    "wrap_stream",
]

logger = logging.getLogger(__name__)

COMPRESSED_EXTENSION = ".gz"


def is_compressed(path: str | Path, compressed_extension: str = COMPRESSED_EXTENSION) -> bool:
    """Return ``True`` if *path* carries the compressed extension.

    The extension matches with or without its leading dot (``"gz"`` or ``".gz"``).
    """
    ext = compressed_extension.strip()
    if not ext.startswith("."):
        ext = f".{ext}"
    return Path(path).suffix == ext


class GzipReader(io.RawIOBase):
    """Readable stream that gunzips a raw byte stream it owns.

    Closing the reader closes the decompressor first, then the raw stream,
    and raises the first error either of them reported.
    """

    def __init__(self, raw: BinaryIO, name: str = "") -> None:
        super().__init__()
        self._raw = raw
        self._name = name or str(getattr(raw, "name", ""))
        self._gzip = gzip.GzipFile(fileobj=raw, mode="rb")

    @property
    def name(self) -> str:
        return self._name

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        try:
            return self._gzip.readinto(buffer)
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            raise DecompressionError(f"Corrupt compressed data in {self._name}: {e}") from e
        except OSError as e:
            raise StreamError(f"Failed reading {self._name}: {e}") from e

    def close(self) -> None:
        if self.closed:
            return
        first: OSError | None = None
        try:
            self._gzip.close()
        except OSError as e:
            first = e
        try:
            self._raw.close()
        except OSError as e:
            first = first or e
        super().close()
        if first is not None:
            raise StreamError(f"Failed closing {self._name}: {first}") from first


def wrap_stream(
    path: str | Path,
    raw: BinaryIO,
    compressed_extension: str = COMPRESSED_EXTENSION,
) -> BinaryIO:
    """Wrap *raw* in a decompressor when *path* is compressed, else return it."""
    if is_compressed(path, compressed_extension):
        return GzipReader(raw, name=str(path))  # type: ignore[return-value]
    return raw


def open_member(path: str | Path, compressed_extension: str = COMPRESSED_EXTENSION) -> BinaryIO:
    """Open one member file for reading, decompressing when needed.

    Raises:
        StreamError: If the file cannot be opened.
    """
    path = Path(path)
    try:
        raw = path.open("rb")
    except OSError as e:
        raise StreamError(f"Cannot open {path}: {e}") from e
    logger.debug("Opened member %s", path)
    return wrap_stream(path, raw, compressed_extension)


def open_for_write(
    path: str | Path,
    compressed_extension: str = COMPRESSED_EXTENSION,
    compress_level: int = 9,
) -> BinaryIO:
    """Create *path* for writing, gzip-compressing when it is compressed.

    Raises:
        StreamError: If the file cannot be created.
    """
    path = Path(path)
    try:
        if is_compressed(path, compressed_extension):
            return gzip.open(path, "wb", compresslevel=compress_level)  # type: ignore[return-value]
        return path.open("wb")
    except OSError as e:
        raise StreamError(f"Cannot create {path}: {e}") from e
