"""Stream records stored across many files, optionally gzip-compressed."""

from recstream.exceptions import (
    DecodeError,
    DecompressionError,
    Exhausted,
    PathNotFoundError,
    PipelineError,
    RecstreamError,
    ResolveError,
    StreamError,
    WriteError,
)
from recstream.multi import MultiReader
from recstream.pipeline import ParallelDecodePipeline, PipelineRun, read_parallel
from recstream.resolve import resolve_paths
from recstream.streamer import RecordStreamer, open_streamer
from recstream.types import PathKind, RecordResult
from recstream.writer import RecordWriter, read_records, write_records

__version__ = "0.1.0"

__all__ = [
    "DecodeError",
    "DecompressionError",
    "Exhausted",
    "MultiReader",
    "ParallelDecodePipeline",
    "PathKind",
    "PathNotFoundError",
    "PipelineError",
    "PipelineRun",
    "RecordResult",
    "RecordStreamer",
    "RecordWriter",
    "RecstreamError",
    "ResolveError",
    "StreamError",
    "WriteError",
    "__version__",
    "open_streamer",
    "read_parallel",
    "read_records",
    "resolve_paths",
    "write_records",
]
