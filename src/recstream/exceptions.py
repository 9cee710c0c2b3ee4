"""Custom exception hierarchy for recstream."""

__all__ = [
    "ConfigError",
    "DecodeError",
    "DecompressionError",
    "Exhausted",
    "PathNotFoundError",
    "PipelineError",
    "RecstreamError",
    "ResolveError",
    "StreamError",
    "WriteError",
]


class RecstreamError(Exception):
    """Base exception for all recstream errors."""


class ConfigError(RecstreamError):
    """Raised when configuration loading or validation fails."""


class ResolveError(RecstreamError):
    """Raised when an input path cannot be resolved into a file list."""


class PathNotFoundError(ResolveError):
    """Raised when an input path does not exist."""


class StreamError(RecstreamError):
    """Raised when opening, reading or closing a member file fails."""


class DecompressionError(StreamError):
    """Raised when a compressed member holds malformed data."""


class DecodeError(RecstreamError):
    """Raised when a record cannot be decoded."""


class WriteError(RecstreamError):
    """Raised when records cannot be written."""


class PipelineError(RecstreamError):
    """Raised when a parallel decode run fails or is misconfigured."""


class Exhausted(Exception):  # noqa: N818
    """Signals that a record stream has no more records.

    Not part of the ``RecstreamError`` tree: ``except RecstreamError``
    does not catch the end of a stream.
    """
