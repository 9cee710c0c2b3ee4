"""JSON record codec.

Records are JSON values laid end to end, separated by optional whitespace.
The writer emits one compact value per line, but any whitespace layout
(including pretty-printed values spanning many lines) decodes the same way.
"""

from __future__ import annotations

import codecs
import dataclasses
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from recstream.codec.base import BaseCodec
from recstream.exceptions import DecodeError, WriteError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import BinaryIO

__all__ = ["JsonCodec", "to_jsonable"]

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 65536

_WHITESPACE = re.compile(r"[ \t\n\r]*")
# Characters that may still extend a number cut off at the end of the buffer.
_NUMBER_TAIL = re.compile(r"[0-9.eE+\-]*\Z")
# Bare tokens a truncated buffer may end in the middle of.
_LITERALS = ("true", "false", "null", "NaN", "Infinity", "-Infinity")


def to_jsonable(obj: object) -> object:
    """``json.dumps`` fallback for dataclass records."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _may_continue(value: Any, buf: str, end: int) -> bool:
    """Whether more input could still change the value decoded from buf[:end]."""
    if end == len(buf):
        return True
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    return is_number and _NUMBER_TAIL.match(buf, end) is not None


def _truncated(error: json.JSONDecodeError, buf: str) -> bool:
    """Whether *error* may only be caused by *buf* ending too early.

    Anything else is malformed no matter what follows, and is reported
    without reading further.
    """
    if error.msg.startswith("Unterminated string"):
        return True
    tail = buf[error.pos :]
    if not tail.strip(" \t\n\r"):
        return True
    if error.msg == "Expecting value":
        return any(literal.startswith(tail) for literal in _LITERALS)
    if error.msg.startswith("Invalid \\uXXXX"):
        return len(tail) <= 6
    return False


class JsonCodec(BaseCodec):
    """Incremental decoder and line-per-record encoder for JSON values."""

    name = "json"

    def __init__(self, read_size: int = DEFAULT_READ_SIZE) -> None:
        if read_size < 1:
            raise ValueError(f"read_size must be >= 1, got {read_size}")
        self.read_size = read_size
        self._decoder = json.JSONDecoder()

    def iter_decode(self, stream: BinaryIO) -> Iterator[Any]:
        """Yield JSON values from *stream*, reading ``read_size`` bytes at a time.

        A value may straddle any number of reads. A value that ends exactly at
        the end of the buffered text is only emitted once more data (or the
        end of the stream) confirms it is complete, so ``12`` followed by
        ``34`` in the next read decodes as ``1234``.
        """
        text_decoder = codecs.getincrementaldecoder("utf-8")()
        buf = ""
        pos = 0
        consumed = 0
        eof = False

        while True:
            pos = _WHITESPACE.match(buf, pos).end()  # type: ignore[union-attr]
            if pos < len(buf):
                try:
                    value, end = self._decoder.raw_decode(buf, pos)
                except json.JSONDecodeError as e:
                    if eof or not _truncated(e, buf):
                        raise DecodeError(
                            f"Malformed record near character {consumed + e.pos}: {e.msg}"
                        ) from e
                else:
                    if eof or not _may_continue(value, buf, end):
                        yield value
                        pos = end
                        continue
            elif eof:
                return

            chunk = stream.read(self.read_size)
            if not chunk:
                eof = True
            try:
                text = text_decoder.decode(chunk or b"", final=eof)
            except UnicodeDecodeError as e:
                raise DecodeError(f"Record stream is not valid UTF-8: {e}") from e
            consumed += pos
            buf = buf[pos:] + text
            pos = 0

    def encode(self, record: Any, stream: BinaryIO) -> None:
        try:
            text = json.dumps(
                record,
                default=to_jsonable,
                ensure_ascii=False,
                separators=(",", ":"),
            )
        except (TypeError, ValueError) as e:
            raise WriteError(f"Cannot encode record as JSON: {e}") from e
        stream.write(text.encode("utf-8") + b"\n")
