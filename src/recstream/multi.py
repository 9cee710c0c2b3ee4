"""Sequential reader over many member files.

:class:`MultiReader` stitches an ordered file list into one continuous binary
stream. Members are opened lazily, one at a time, in list order, and closed as
soon as they are drained; compressed members are decompressed on the fly.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from recstream.compression import COMPRESSED_EXTENSION, open_member
from recstream.exceptions import RecstreamError, StreamError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import BinaryIO

__all__ = ["MultiReader"]

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 65536


class MultiReader(io.RawIOBase):
    """Read an ordered list of files as if they were a single stream.

    Crossing from one member to the next is invisible to the caller: a read
    only returns no data once the last member is drained. Reads after that,
    or after :meth:`close`, keep returning no data and never reopen files.

    Usage::

        with MultiReader([Path("a.json"), Path("b.json.gz")]) as reader:
            data = reader.read()
    """

    def __init__(
        self,
        files: Iterable[str | Path],
        compressed_extension: str = COMPRESSED_EXTENSION,
    ) -> None:
        super().__init__()
        self._files: tuple[Path, ...] = tuple(Path(f) for f in files)
        self._compressed_extension = compressed_extension
        self._next_index = 0
        self._current: BinaryIO | None = None
        self._current_path: Path | None = None

    @property
    def files(self) -> tuple[Path, ...]:
        return self._files

    @property
    def current_path(self) -> Path | None:
        """The member being drained, or ``None`` between members."""
        return self._current_path

    def readable(self) -> bool:
        return True

    def _open_next(self) -> BinaryIO | None:
        """Open the member at the cursor. Returns ``None`` when none remain."""
        if self._next_index >= len(self._files):
            return None
        path = self._files[self._next_index]
        self._current = open_member(path, self._compressed_extension)
        self._current_path = path
        self._next_index += 1
        return self._current

    def _release_current(self) -> None:
        """Close the drained member, raising any close error."""
        current, path = self._current, self._current_path
        self._current = None
        self._current_path = None
        if current is None:
            return
        try:
            current.close()
        except StreamError:
            raise
        except OSError as e:
            raise StreamError(f"Failed closing {path}: {e}") from e
        logger.debug("Closed member %s", path)

    def _discard_current(self) -> None:
        """Close the member after a failed read; close errors are only logged."""
        path = self._current_path
        try:
            self._release_current()
        except (OSError, RecstreamError) as e:
            logger.warning("Error closing %s after a failed read: %s", path, e)

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        if len(buffer) == 0:
            return 0
        while True:
            current = self._current
            if current is None:
                current = self._open_next()
                if current is None:
                    return 0

            try:
                n = current.readinto(buffer)  # type: ignore[attr-defined]
            except RecstreamError:
                self._discard_current()
                raise
            except OSError as e:
                path = self._current_path
                self._discard_current()
                raise StreamError(f"Failed reading {path}: {e}") from e

            if n:
                return n

            # Member drained; move on unless it was the last one.
            self._release_current()
            if self._next_index >= len(self._files):
                return 0

    def read(self, size: int | None = -1) -> bytes:
        if size is None or size < 0:
            return self.readall()
        buffer = bytearray(size)
        n = self.readinto(buffer)
        return bytes(buffer[:n])

    def readall(self) -> bytes:
        chunks: list[bytes] = []
        while chunk := self.read(DEFAULT_READ_SIZE):
            chunks.append(chunk)
        return b"".join(chunks)

    def close(self) -> None:
        """Release the open member, if any, and reset the cursor."""
        if self.closed:
            return
        try:
            self._release_current()
        finally:
            self._files = ()
            self._next_index = 0
            super().close()
