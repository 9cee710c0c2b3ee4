"""Parallel record decoding over many files.

A fixed pool of worker threads claims whole files from a shared path queue,
decodes each one sequentially, and publishes every record onto one bounded
output queue. Records from a single file keep their order; records from
different files interleave in whatever order the workers finish them.

Thread layout of a run::

    feeder ──paths──▶ worker × N ──RecordResult──▶ output queue ──▶ consumer
                                  ▲
    closer: joins feeder + workers, then puts the end marker (sole closer)
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING, Any, cast

from recstream.codec import get_codec
from recstream.compression import COMPRESSED_EXTENSION, open_member
from recstream.config import default_config
from recstream.exceptions import PipelineError, RecstreamError
from recstream.resolve import resolve_paths
from recstream.streamer import make_converter
from recstream.types import RecordResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence
    from pathlib import Path
    from types import TracebackType

    from recstream.codec import BaseCodec
    from recstream.config import RecstreamConfig

__all__ = [
    "ParallelDecodePipeline",
    "PipelineRun",
    "read_parallel",
]

logger = logging.getLogger(__name__)

# Blocked queue operations wake this often to check for cancellation, which
# bounds how long a cancel takes to reach a blocked worker.
_WAIT_INTERVAL = 0.05

_STOP = object()
_END = object()


class PipelineRun:
    """One execution of a :class:`ParallelDecodePipeline`.

    Iterating the run yields :class:`~recstream.types.RecordResult` items
    until every worker has finished; a failed file shows up as a single
    result carrying the error, and the run carries on with the other files.
    Only the run's closer thread ends the output stream, and only after all
    workers have been joined.

    Every failed file is also recorded in :attr:`errors`, including failures
    whose result was discarded by a cancel; the list is complete once the
    run is done.

    After :meth:`cancel`, workers stop at the next record or file boundary,
    results not yet consumed are discarded, and iteration ends.
    """

    def __init__(
        self,
        files: Sequence[Path],
        workers: int,
        codec: BaseCodec,
        convert: Callable[[Any], Any],
        *,
        path_queue_size: int,
        output_queue_size: int,
        stop_on_error: bool,
        compressed_extension: str,
    ) -> None:
        self.files = tuple(files)
        self.errors: list[RecordResult] = []
        self._errors_lock = threading.Lock()
        self._codec = codec
        self._convert = convert
        self._stop_on_error = stop_on_error
        self._compressed_extension = compressed_extension
        self._paths: queue.Queue[object] = queue.Queue(maxsize=path_queue_size)
        self._output: queue.Queue[object] = queue.Queue(maxsize=output_queue_size)
        self._cancel = threading.Event()
        self._done = threading.Event()

        self._feeder = threading.Thread(target=self._feed, name="recstream-feeder", daemon=True)
        self._workers = [
            threading.Thread(target=self._work, name=f"recstream-worker-{i}", daemon=True)
            for i in range(workers)
        ]
        self._closer = threading.Thread(target=self._finish, name="recstream-closer", daemon=True)

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> PipelineRun:
        logger.info("Starting %d workers for %d files", len(self._workers), len(self.files))
        for worker in self._workers:
            worker.start()
        self._feeder.start()
        self._closer.start()
        return self

    def cancel(self) -> None:
        """Ask all threads to stop; safe to call from any thread, any number of times."""
        if not self._cancel.is_set():
            logger.info("Cancelling parallel decode run")
            self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        """``True`` once every worker has finished and the end marker is queued."""
        return self._done.is_set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the run to finish. Returns ``False`` on timeout."""
        self._closer.join(timeout)
        return not self._closer.is_alive()

    # -- queue helpers -------------------------------------------------------

    def _put(self, q: queue.Queue[object], item: object) -> bool:
        """Blocking put that gives up when the run is cancelled."""
        while not self._cancel.is_set():
            try:
                q.put(item, timeout=_WAIT_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _next_path(self) -> object:
        while not self._cancel.is_set():
            try:
                return self._paths.get(timeout=_WAIT_INTERVAL)
            except queue.Empty:
                continue
        return _STOP

    # -- threads -------------------------------------------------------------

    def _feed(self) -> None:
        for path in self.files:
            if not self._put(self._paths, path):
                return
        for _ in self._workers:
            if not self._put(self._paths, _STOP):
                return

    def _work(self) -> None:
        while True:
            path = self._next_path()
            if path is _STOP:
                return
            self._drain_file(path)  # type: ignore[arg-type]

    def _drain_file(self, path: Path) -> None:
        logger.debug("Worker %s reading %s", threading.current_thread().name, path)
        count = 0
        error: Exception | None = None
        try:
            with open_member(path, self._compressed_extension) as stream:
                for value in self._codec.iter_decode(stream):
                    if self._cancel.is_set():
                        return
                    result = RecordResult(path=path, record=self._convert(value))
                    if not self._put(self._output, result):
                        return
                    count += 1
        except RecstreamError as e:
            error = e
        except Exception as e:
            error = PipelineError(f"Unexpected failure reading {path}: {e}")
            error.__cause__ = e

        if error is None:
            logger.debug("Read %d records from %s", count, path)
            return

        logger.warning("Failed reading %s after %d records: %s", path, count, error)
        failure = RecordResult(path=path, error=error)
        with self._errors_lock:
            self.errors.append(failure)
        self._put(self._output, failure)
        if self._stop_on_error:
            self.cancel()

    def _finish(self) -> None:
        self._feeder.join()
        for worker in self._workers:
            worker.join()
        while True:
            if self._cancel.is_set():
                self._discard_pending()
            try:
                self._output.put(_END, timeout=_WAIT_INTERVAL)
                break
            except queue.Full:
                continue
        self._done.set()
        logger.info("Parallel decode run finished (%d failed files)", len(self.errors))

    def _discard_pending(self) -> None:
        # Nobody is waiting on undelivered results after a cancel.
        while True:
            try:
                self._output.get_nowait()
            except queue.Empty:
                return

    # -- consumer API --------------------------------------------------------

    def __iter__(self) -> Iterator[RecordResult]:
        while True:
            item = self._output.get()
            if item is _END:
                # Leave the marker for any other consumer.
                self._output.put(_END)
                return
            yield cast("RecordResult", item)

    def records(self) -> Iterator[Any]:
        """Yield bare records, cancelling the run at the first failed file.

        Raises:
            PipelineError: Wrapping the first file failure.
        """
        for result in self:
            if result.error is not None:
                self.cancel()
                raise PipelineError(
                    f"Failed reading {result.path}: {result.error}"
                ) from result.error
            yield result.record
        # A stop_on_error cancel may have discarded the failing result itself.
        if self.errors:
            first = self.errors[0]
            raise PipelineError(f"Failed reading {first.path}: {first.error}") from first.error

    def __enter__(self) -> PipelineRun:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cancel()
        self.join()


class ParallelDecodePipeline:
    """Decode many files concurrently with a fixed pool of worker threads.

    Usage::

        pipeline = ParallelDecodePipeline(workers=4)
        with pipeline.run(files) as run:
            for result in run:
                if result.ok:
                    handle(result.record)
    """

    def __init__(
        self,
        workers: int,
        codec: BaseCodec | None = None,
        record_type: Callable[..., Any] | None = None,
        *,
        path_queue_size: int = 10,
        output_queue_size: int = 1024,
        stop_on_error: bool = False,
        compressed_extension: str = COMPRESSED_EXTENSION,
    ) -> None:
        if workers < 1:
            raise PipelineError(f"workers must be >= 1, got {workers}")
        if path_queue_size < 1:
            raise PipelineError(f"path_queue_size must be >= 1, got {path_queue_size}")
        if output_queue_size < 0:
            raise PipelineError(f"output_queue_size must be >= 0, got {output_queue_size}")
        self.workers = workers
        self.codec = codec or get_codec("json")
        self.convert = make_converter(record_type)
        self.path_queue_size = path_queue_size
        self.output_queue_size = output_queue_size
        self.stop_on_error = stop_on_error
        self.compressed_extension = compressed_extension

    @classmethod
    def from_config(
        cls,
        config: RecstreamConfig,
        codec: BaseCodec | None = None,
        record_type: Callable[..., Any] | None = None,
        workers: int | None = None,
    ) -> ParallelDecodePipeline:
        """Build a pipeline from the ``[pipeline]`` and ``[stream]`` settings."""
        return cls(
            workers=workers or config.pipeline.workers,
            codec=codec or get_codec(config.stream.codec, read_size=config.stream.read_size),
            record_type=record_type,
            path_queue_size=config.pipeline.path_queue_size,
            output_queue_size=config.pipeline.output_queue_size,
            stop_on_error=config.pipeline.stop_on_error,
            compressed_extension=config.stream.compressed_extension,
        )

    def run(self, files: Iterable[Path]) -> PipelineRun:
        """Start decoding *files* in the background and return the run."""
        return PipelineRun(
            tuple(files),
            self.workers,
            self.codec,
            self.convert,
            path_queue_size=self.path_queue_size,
            output_queue_size=self.output_queue_size,
            stop_on_error=self.stop_on_error,
            compressed_extension=self.compressed_extension,
        ).start()


def read_parallel(
    path: str | Path,
    workers: int | None = None,
    extensions: Iterable[str] = (),
    *,
    codec: BaseCodec | None = None,
    record_type: Callable[..., Any] | None = None,
    config: RecstreamConfig | None = None,
) -> PipelineRun:
    """Resolve *path* and decode its files concurrently.

    Raises:
        ResolveError: If *path* cannot be resolved.
        PipelineError: If the pipeline settings are invalid.
    """
    config = config or default_config()
    files = resolve_paths(
        path,
        tuple(extensions) or tuple(config.stream.extensions),
        manifest_extension=config.stream.manifest_extension,
        compressed_extension=config.stream.compressed_extension,
    )
    pipeline = ParallelDecodePipeline.from_config(
        config, codec=codec, record_type=record_type, workers=workers
    )
    return pipeline.run(files)
