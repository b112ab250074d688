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
"""Wires the mapper, batcher, streaming loader and collector together."""

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from .batching import Batcher
from .collector import ResultCollector
from .config import DEFAULT_BATCH_SIZE, WriteConfig
from .exceptions import ConfigurationError
from .loader.base import BaseLoader
from .pipe import DEFAULT_PIPE_BUFFER_SIZE
from .streaming import StreamingBulkLoader

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")
MappedRow = tuple[str, ...]


class BulkWrite(Generic[RecordT]):
    """Bulk-loads an iterable of records into one table.

    Each record is turned into a row by ``user_data_mapper``. Rows are grouped
    into batches of ``batch_size`` and every batch is streamed to the store by
    a single bulk-load command on its own connection. Batches are loaded one
    at a time, in input order.

    Example:
        >>> write = BulkWrite(loader, "events", lambda e: [e.id, e.name])
        >>> total = write.write_all(events)

    """

    def __init__(
        self,
        loader: BaseLoader,
        table: str,
        user_data_mapper: Callable[[RecordT], Sequence[str]],
        batch_size: int = DEFAULT_BATCH_SIZE,
        pipe_buffer_size: int = DEFAULT_PIPE_BUFFER_SIZE,
    ) -> None:
        """Validate the configuration; raise ConfigurationError if invalid."""
        try:
            self.config = WriteConfig(
                loader=loader,
                table=table,
                user_data_mapper=user_data_mapper,
                batch_size=batch_size,
                pipe_buffer_size=pipe_buffer_size,
            )
        except ValidationError as exc:
            msg = f"invalid bulk write configuration: {exc}"
            raise ConfigurationError(msg) from exc

        self._streamer = StreamingBulkLoader(
            self.config.loader, self.config.table, self.config.pipe_buffer_size,
        )

    def write(self, records: Iterable[RecordT]) -> Iterator[int]:
        """Load ``records`` and yield the row count of every batch.

        Raises:
            BatchLoadError: When a batch fails. Batches yielded before it stay
                loaded; nothing is retried.

        """
        batcher: Batcher[MappedRow] = Batcher(self.config.batch_size)
        collector = ResultCollector()
        logger.info("Starting bulk write: %s", self.display_data())

        for record in records:
            batch = batcher.add(tuple(self.config.user_data_mapper(record)))
            if batch is not None:
                yield collector.collect(self._streamer.load(batch))

        remainder = batcher.flush()
        if remainder is not None:
            yield collector.collect(self._streamer.load(remainder))

        logger.info(
            "Bulk write into %s finished: %d batches, %d rows.",
            self.config.table,
            collector.batches,
            collector.rows,
        )

    def write_all(self, records: Iterable[RecordT]) -> int:
        """Load ``records`` and return the total row count."""
        return sum(self.write(records))

    def display_data(self) -> dict[str, Any]:
        """Describe this write for logs and diagnostics."""
        mapper = self.config.user_data_mapper
        return {
            "loader": type(self.config.loader).__name__,
            "table": self.config.table,
            "batch_size": self.config.batch_size,
            "pipe_buffer_size": self.config.pipe_buffer_size,
            "user_data_mapper": getattr(mapper, "__qualname__", type(mapper).__name__),
        }
