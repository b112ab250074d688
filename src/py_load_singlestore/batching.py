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
"""Groups mapped rows into bounded, order-preserving batches."""

from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

from .exceptions import ConfigurationError

RowT = TypeVar("RowT")


class Batcher(Generic[RowT]):
    """Accumulates rows and hands out full batches.

    A batch is returned as soon as ``batch_size`` rows have been added. The
    remainder is only handed out by :meth:`flush`, which the caller invokes at
    end of input. Empty batches are never produced.
    """

    def __init__(self, batch_size: int) -> None:
        if batch_size <= 0:
            msg = f"batch_size must be greater than 0, got {batch_size}"
            raise ConfigurationError(msg)
        self.batch_size = batch_size
        self._buffer: list[RowT] = []

    def __len__(self) -> int:
        return len(self._buffer)

    def add(self, row: RowT) -> list[RowT] | None:
        """Append a row; return the completed batch if the size was reached."""
        self._buffer.append(row)
        if len(self._buffer) >= self.batch_size:
            batch = self._buffer
            self._buffer = []
            return batch
        return None

    def flush(self) -> list[RowT] | None:
        """Return the buffered remainder, or None if nothing is buffered."""
        if not self._buffer:
            return None
        batch = self._buffer
        self._buffer = []
        return batch


def batched(rows: Iterable[RowT], batch_size: int) -> Iterator[list[RowT]]:
    """Yield every batch of ``rows``, including the final partial one."""
    batcher: Batcher[RowT] = Batcher(batch_size)
    for row in rows:
        batch = batcher.add(row)
        if batch is not None:
            yield batch
    remainder = batcher.flush()
    if remainder is not None:
        yield remainder
