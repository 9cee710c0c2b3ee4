"""Record writing.

:class:`RecordWriter` appends one encoded record per call to a new file,
flushing after each record. Files whose name ends in ``.gz`` are written
gzip-compressed. Parent directories are created as needed.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from recstream.codec import JsonCodec
from recstream.codec.jsonstream import to_jsonable
from recstream.compression import COMPRESSED_EXTENSION, open_for_write, open_member
from recstream.exceptions import DecodeError, StreamError, WriteError
from recstream.streamer import RecordStreamer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from types import TracebackType

    from recstream.codec import BaseCodec

__all__ = [
    "RecordWriter",
    "read_json_file",
    "read_records",
    "write_json_file",
    "write_records",
]

logger = logging.getLogger(__name__)


def _make_parents(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Cannot create directory {path.parent}: {e}") from e


class RecordWriter:
    """Write records to a single file, one flushed record per call.

    Usage::

        with RecordWriter(Path("out/events.json.gz")) as writer:
            for event in events:
                writer.write(event)
    """

    def __init__(
        self,
        path: str | Path,
        codec: BaseCodec | None = None,
        *,
        compressed_extension: str = COMPRESSED_EXTENSION,
        compress_level: int = 9,
    ) -> None:
        self.path = Path(path)
        self.codec = codec or JsonCodec()
        self.count = 0
        _make_parents(self.path)
        try:
            self._stream = open_for_write(self.path, compressed_extension, compress_level)
        except StreamError as e:
            raise WriteError(str(e)) from e
        self._closed = False
        logger.debug("Opened %s for writing", self.path)

    def write(self, record: Any) -> None:
        """Encode *record* and flush it to the file.

        Raises:
            WriteError: If the writer is closed, the record cannot be encoded,
                or the write fails.
        """
        if self._closed:
            raise WriteError(f"Writer for {self.path} is closed")
        try:
            self.codec.encode(record, self._stream)
            self._stream.flush()
        except OSError as e:
            raise WriteError(f"Failed writing to {self.path}: {e}") from e
        self.count += 1

    def close(self) -> None:
        """Flush and close the file; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.close()
        except OSError as e:
            raise WriteError(f"Failed closing {self.path}: {e}") from e
        logger.debug("Wrote %d records to %s", self.count, self.path)

    def __enter__(self) -> RecordWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def write_records(
    path: str | Path,
    records: Iterable[Any],
    codec: BaseCodec | None = None,
    *,
    compress_level: int = 9,
) -> int:
    """Write all *records* to *path*. Returns the number written."""
    with RecordWriter(path, codec, compress_level=compress_level) as writer:
        for record in records:
            writer.write(record)
    logger.info("Wrote %d records to %s", writer.count, path)
    return writer.count


def read_records(
    path: str | Path,
    codec: BaseCodec | None = None,
    record_type: Callable[..., Any] | None = None,
) -> list[Any]:
    """Read every record of one (possibly compressed) file into a list."""
    with RecordStreamer(open_member(path), codec=codec, record_type=record_type) as streamer:
        return list(streamer)


def write_json_file(path: str | Path, obj: Any) -> None:
    """Write *obj* as a single JSON document, creating parent directories."""
    path = Path(path)
    _make_parents(path)
    try:
        text = json.dumps(obj, default=to_jsonable, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise WriteError(f"Cannot encode {type(obj).__name__} as JSON: {e}") from e
    try:
        path.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        raise WriteError(f"Failed writing {path}: {e}") from e


def read_json_file(path: str | Path) -> Any:
    """Read a file holding a single JSON document.

    An empty file reads as ``None``.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StreamError(f"Cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise DecodeError(f"{path} is not valid UTF-8: {e}") from e
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed JSON in {path}: {e}") from e

