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
"""Test doubles for the bulk-load pipeline."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

from py_load_singlestore.escaping import escape_identifier
from py_load_singlestore.loader.base import BaseLoader

_UNESCAPES = {"\\": "\\", "n": "\n", "t": "\t"}


def unescape_cell(cell: str) -> str:
    """Reverse the backslash escapes of a single field."""
    out = []
    chars = iter(cell)
    for char in chars:
        if char == "\\":
            out.append(_UNESCAPES[next(chars)])
        else:
            out.append(char)
    return "".join(out)


def parse_rows(payload: bytes) -> list[tuple[str, ...]]:
    """Split a serialized batch back into rows of unescaped cells."""
    text = payload.decode("utf-8")
    assert text == "" or text.endswith("\n"), "rows must be newline terminated"
    return [
        tuple(unescape_cell(cell) for cell in line.split("\t"))
        for line in text.split("\n")[:-1]
    ]


class FakeLoader(BaseLoader):
    """Stands in for a database: reads the stream and records what it saw.

    Args:
        read_size: Bytes requested per read from the stream.
        fail_on_call: 1-based index of the load call that raises ``error``.
        error: Exception raised by the failing call.
        max_reads: Stop reading (and return) after this many reads.
        row_count: Fixed row count to report instead of the parsed one.

    """

    def __init__(
        self,
        read_size: int = 100,
        fail_on_call: int | None = None,
        error: BaseException | None = None,
        max_reads: int | None = None,
        row_count: int | None = None,
    ) -> None:
        self.read_size = read_size
        self.fail_on_call = fail_on_call
        self.error = error or RuntimeError("store rejected the load")
        self.max_reads = max_reads
        self.row_count = row_count

        self.statements: list[str] = []
        self.loaded_rows: list[tuple[str, ...]] = []
        self.batch_sizes: list[int] = []
        self.read_errors: list[OSError] = []
        self.commits = 0
        self.rollbacks = 0
        self.open_connections = 0
        self._lock = threading.Lock()

    @contextmanager
    def get_conn(self) -> Iterator[Any]:
        with self._lock:
            self.open_connections += 1
        try:
            yield object()
        except BaseException:
            self.rollbacks += 1
            raise
        else:
            self.commits += 1
        finally:
            with self._lock:
                self.open_connections -= 1

    def build_load_statement(self, target_table: str) -> str:
        return f"LOAD DATA LOCAL INFILE ':stream:' INTO TABLE {escape_identifier(target_table)}"

    def bulk_load_stream(self, target_table: str, data_stream: IO[bytes], conn: Any) -> int:
        self.statements.append(self.build_load_statement(target_table))
        if self.fail_on_call == len(self.statements):
            raise self.error

        payload = bytearray()
        reads = 0
        while True:
            try:
                chunk = data_stream.read(self.read_size)
            except OSError as exc:
                # A real store aborts the statement when its input fails.
                self.read_errors.append(exc)
                raise
            if not chunk:
                break
            payload += chunk
            reads += 1
            if self.max_reads is not None and reads >= self.max_reads:
                return self.row_count if self.row_count is not None else 0

        rows = parse_rows(bytes(payload))
        self.loaded_rows.extend(rows)
        self.batch_sizes.append(len(rows))
        return self.row_count if self.row_count is not None else len(rows)


def writer_threads() -> list[threading.Thread]:
    return [t for t in threading.enumerate() if t.name == "bulk-load-writer"]
