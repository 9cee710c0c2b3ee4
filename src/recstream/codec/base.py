"""Abstract base class for record codecs."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import BinaryIO

__all__ = ["BaseCodec"]

logger = logging.getLogger(__name__)


class BaseCodec(ABC):
    """Base class for record codecs.

    A codec turns a binary stream into a sequence of decoded values and
    writes single values back out. It knows nothing about files, member
    boundaries or compression: it only ever sees one byte stream.
    """

    name: str = ""

    @abstractmethod
    def iter_decode(self, stream: BinaryIO) -> Iterator[Any]:
        """Yield decoded values from *stream* until it is exhausted.

        Raises:
            DecodeError: If the stream holds a malformed or truncated record.
        """

    @abstractmethod
    def encode(self, record: Any, stream: BinaryIO) -> None:
        """Write one encoded *record* to *stream*.

        Raises:
            WriteError: If the record cannot be encoded.
        """
