"""Data contracts for recstream.

Small frozen values that cross module boundaries:
  str → PathKind → tuple[Path, ...] → records / RecordResult
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

__all__ = [
    "PathKind",
    "RecordResult",
]


class PathKind(str, Enum):
    """How an input path expands into member files."""

    FILE = "file"
    DIRECTORY = "directory"
    MANIFEST = "manifest"


@dataclass(frozen=True)
class RecordResult:
    """One item published by a parallel decode run.

    Exactly one of ``record`` and ``error`` is meaningful: a failed file
    produces a single result with ``error`` set and no record.
    """

    path: Path
    record: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the record, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.record
