# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Streams one batch into the store while the bulk-load command runs.

A writer thread serializes the batch into a bounded pipe while the calling
thread executes the load command, which reads the other end of the pipe. The
two must overlap: the pipe holds at most ``pipe_buffer_size`` bytes, so the
writer blocks until the store drains it.

A batch only succeeds when the load command returned *and* the writer
finished cleanly. A failing writer aborts the pipe so the load command fails
on its next read. A writer error after the store reported a count means the
store saw truncated data, so that count is discarded.
"""

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .escaping import iter_escaped_rows
from .exceptions import TransmissionError
from .loader.base import BaseLoader
from .pipe import DEFAULT_PIPE_BUFFER_SIZE, PipeReader, PipeWriter, open_pipe

logger = logging.getLogger(__name__)


class LoadState(str, Enum):
    IDLE = "IDLE"
    WRITER_STARTED = "WRITER_STARTED"
    LOAD_ISSUED = "LOAD_ISSUED"
    JOINED = "JOINED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class BatchOutcome:
    """Result of loading one batch: a row count or the error that failed it."""

    batch_size: int
    state: LoadState
    row_count: int | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is LoadState.SUCCEEDED


class _BatchWriter(threading.Thread):
    """Writes the escaped batch into the pipe, then closes it to signal EOF.

    On error the pipe is aborted instead of closed, so the store's read fails
    rather than seeing a clean end of a truncated stream. Errors are kept on
    ``self.error`` for the orchestrator to inspect after ``join()``; nothing
    is raised inside the thread.
    """

    def __init__(self, batch: Sequence[Sequence[str]], sink: PipeWriter) -> None:
        super().__init__(name="bulk-load-writer", daemon=True)
        self._batch = batch
        self._sink = sink
        self.error: Exception | None = None
        self.aborted = False

    def run(self) -> None:
        try:
            for fragment in iter_escaped_rows(self._batch):
                self._sink.write(fragment)
        except Exception as exc:  # noqa: BLE001
            self.error = exc
            self.aborted = self._sink.abort(exc)
        finally:
            self._sink.close()


class StreamingBulkLoader:
    """Loads batches into one table through a loader's bulk-load command.

    Every call to :meth:`load` opens its own connection and its own pipe, so
    an instance may be reused for consecutive batches. It must not be shared
    by threads loading batches concurrently.
    """

    def __init__(
        self,
        loader: BaseLoader,
        table: str,
        pipe_buffer_size: int = DEFAULT_PIPE_BUFFER_SIZE,
    ) -> None:
        self.loader = loader
        self.table = table
        self.pipe_buffer_size = pipe_buffer_size

    def load(self, batch: Sequence[Sequence[str]]) -> BatchOutcome:
        """Load ``batch`` and report its outcome.

        Failures of the store or of the writer are returned as a FAILED
        outcome. Interrupts such as ``KeyboardInterrupt`` propagate, after the
        pipe has been closed and the writer joined.
        """
        self._log_state(LoadState.IDLE, batch)
        reader, sink = open_pipe(self.pipe_buffer_size)
        writer = _BatchWriter(batch, sink)
        writer.start()
        self._log_state(LoadState.WRITER_STARTED, batch)
        error: Exception | None = None
        try:
            row_count = self._run_load(batch, reader, writer)
        except Exception as exc:
            error = exc
        finally:
            self._join(reader, writer)

        if error is not None:
            if writer.error is not None and error.__cause__ is not writer.error:
                logger.debug("Writer stopped after the load failed: %r", writer.error)
            logger.warning(
                "Loading %d rows into %s failed: %s", len(batch), self.table, error,
            )
            return BatchOutcome(len(batch), LoadState.FAILED, error=error)

        self._log_state(LoadState.SUCCEEDED, batch)
        return BatchOutcome(len(batch), LoadState.SUCCEEDED, row_count=row_count)

    def _run_load(
        self,
        batch: Sequence[Sequence[str]],
        reader: PipeReader,
        writer: _BatchWriter,
    ) -> int:
        # The writer is joined inside the connection scope so that a
        # transmission error rolls back the load.
        with self.loader.get_conn() as conn:
            self._log_state(LoadState.LOAD_ISSUED, batch)
            try:
                row_count = self.loader.bulk_load_stream(self.table, reader, conn)
            except Exception:
                self._join(reader, writer)
                if writer.aborted:
                    raise self._transmission_error(batch, writer) from writer.error
                raise
            self._join(reader, writer)
            self._log_state(LoadState.JOINED, batch)

            if writer.error is not None:
                raise self._transmission_error(batch, writer) from writer.error
            return row_count

    def _transmission_error(
        self, batch: Sequence[Sequence[str]], writer: _BatchWriter,
    ) -> TransmissionError:
        msg = f"writing {len(batch)} rows to {self.table} failed: {writer.error}"
        return TransmissionError(msg)

    @staticmethod
    def _join(reader: PipeReader, writer: _BatchWriter) -> None:
        # Closing the read end first unblocks a writer stuck on a full pipe.
        # Both steps are idempotent.
        reader.close()
        writer.join()

    def _log_state(self, state: LoadState, batch: Sequence[Sequence[str]]) -> None:
        logger.debug("Batch of %d rows for %s: %s", len(batch), self.table, state.value)
