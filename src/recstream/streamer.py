"""Pull-based record streaming over one logical byte stream.

:class:`RecordStreamer` layers a codec over a byte stream and hands out one
record per :meth:`RecordStreamer.next` call, in stream order. :func:`open_streamer`
builds one from an input path (file, directory or manifest).
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from recstream.codec import JsonCodec, get_codec
from recstream.compression import open_member
from recstream.config import default_config
from recstream.exceptions import DecodeError, Exhausted, RecstreamError
from recstream.multi import MultiReader
from recstream.resolve import resolve_paths

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from pathlib import Path
    from types import TracebackType
    from typing import BinaryIO

    from recstream.codec import BaseCodec
    from recstream.config import RecstreamConfig

__all__ = [
    "RecordStreamer",
    "make_converter",
    "open_streamer",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def make_converter(record_type: Callable[..., T] | None) -> Callable[[Any], T]:
    """Build the function that turns a decoded value into *record_type*.

    Dataclasses are built from the mapping keys that match their fields
    (unknown keys are ignored); any other callable receives the decoded value
    as its only argument. With no *record_type* values pass through as-is.
    Conversion failures raise :class:`DecodeError`.
    """
    if record_type is None:
        return lambda value: value

    if isinstance(record_type, type) and dataclasses.is_dataclass(record_type):
        field_names = {f.name for f in dataclasses.fields(record_type)}

        def _build(value: Any) -> T:
            if not isinstance(value, dict):
                raise DecodeError(
                    f"Expected an object for {record_type.__name__}, got {type(value).__name__}"
                )
            try:
                return record_type(**{k: v for k, v in value.items() if k in field_names})
            except TypeError as e:
                raise DecodeError(f"Cannot build {record_type.__name__}: {e}") from e

        return _build

    def _call(value: Any) -> T:
        try:
            return record_type(value)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Cannot convert record with {record_type!r}: {e}") from e

    return _call


class RecordStreamer(Generic[T]):
    """Decode records one at a time from a byte stream.

    :meth:`next` raises :class:`~recstream.exceptions.Exhausted` once the
    stream ends cleanly, and keeps raising it on later calls. A malformed
    record raises :class:`~recstream.exceptions.DecodeError`, and so does
    every later call; stream failures are sticky in the same way. Iterating
    the streamer stops at exhaustion.

    Usage::

        with open_streamer("data/", record_type=Event) as streamer:
            for event in streamer:
                handle(event)
    """

    def __init__(
        self,
        stream: BinaryIO,
        codec: BaseCodec | None = None,
        record_type: Callable[..., T] | None = None,
    ) -> None:
        self._stream = stream
        self._codec = codec or JsonCodec()
        self._values = self._codec.iter_decode(stream)
        self._convert = make_converter(record_type)
        self._exhausted = False
        self._failure: RecstreamError | None = None
        self.count = 0

    def next(self) -> T:
        """Return the next record.

        Raises:
            Exhausted: The stream has no more records.
            DecodeError: The next record is malformed.
            StreamError: Reading the underlying stream failed.
        """
        if self._failure is not None:
            raise self._failure
        if self._exhausted:
            raise Exhausted("no more records")
        try:
            value = next(self._values)
        except StopIteration:
            self._exhausted = True
            logger.debug("Record stream exhausted after %d records", self.count)
            raise Exhausted("no more records") from None
        except RecstreamError as e:
            self._failure = e
            raise
        try:
            record = self._convert(value)
        except DecodeError as e:
            self._failure = e
            raise
        self.count += 1
        return record

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        try:
            return self.next()
        except Exhausted:
            raise StopIteration from None

    def close(self) -> None:
        """Close the underlying byte stream."""
        close_values = getattr(self._values, "close", None)
        if close_values is not None:
            close_values()
        self._stream.close()

    def __enter__(self) -> RecordStreamer[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def open_streamer(
    path: str | Path,
    extensions: Iterable[str] = (),
    *,
    codec: BaseCodec | None = None,
    record_type: Callable[..., T] | None = None,
    config: RecstreamConfig | None = None,
) -> RecordStreamer[T]:
    """Resolve *path* and stream its records in file-list order.

    A single resolved file is read directly through the decompression
    adapter; several files go through a :class:`MultiReader`.

    Args:
        path: A file, a directory, or a manifest file.
        extensions: Extra plain extensions accepted when walking a directory.
            Defaults to ``[stream] extensions`` from *config*.
        codec: Record codec. Defaults to the ``[stream] codec`` setting.
        record_type: Optional type each decoded record is converted to.
        config: Settings; defaults are used when omitted.

    Raises:
        ResolveError: If *path* cannot be resolved.
        StreamError: If the single member file cannot be opened.
    """
    config = config or default_config()
    stream_cfg = config.stream
    files = resolve_paths(
        path,
        tuple(extensions) or tuple(stream_cfg.extensions),
        manifest_extension=stream_cfg.manifest_extension,
        compressed_extension=stream_cfg.compressed_extension,
    )
    codec = codec or get_codec(stream_cfg.codec, read_size=stream_cfg.read_size)

    stream: BinaryIO
    if len(files) == 1:
        stream = open_member(files[0], stream_cfg.compressed_extension)
    else:
        stream = MultiReader(files, stream_cfg.compressed_extension)  # type: ignore[assignment]
    return RecordStreamer(stream, codec=codec, record_type=record_type)
