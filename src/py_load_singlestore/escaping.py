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
"""Serializes rows into the tab-separated dialect read by bulk-load commands.

Fields are separated by a tab, rows are terminated by a newline, and the
three characters with special meaning are backslash-escaped. Both
``LOAD DATA`` (SingleStore/MySQL) and ``COPY ... FROM STDIN`` in text format
(PostgreSQL) parse this dialect with their default options.
"""

from collections.abc import Iterable, Iterator, Sequence

FIELD_DELIMITER = "\t"
ROW_TERMINATOR = "\n"
ENCODING = "utf-8"


def escape_cell(cell: str) -> str:
    """Escape backslash, newline and tab in a single field value.

    Backslashes must be doubled first, otherwise the escapes introduced for
    newline and tab would be escaped a second time.
    """
    if "\\" in cell:
        cell = cell.replace("\\", "\\\\")
    if "\n" in cell:
        cell = cell.replace("\n", "\\n")
    if "\t" in cell:
        cell = cell.replace("\t", "\\t")
    return cell


def escape_row(row: Sequence[str]) -> bytes:
    """Serialize one row into a newline-terminated, UTF-8 encoded fragment.

    A row without cells is rejected: its fragment would be a bare newline,
    which the store reads as one empty field rather than as no row.
    """
    if not row:
        msg = "row has no cells"
        raise ValueError(msg)
    line = FIELD_DELIMITER.join(escape_cell(cell) for cell in row)
    return (line + ROW_TERMINATOR).encode(ENCODING)


def iter_escaped_rows(batch: Iterable[Sequence[str]]) -> Iterator[bytes]:
    """Yield the serialized fragment of each row, in batch order."""
    for row in batch:
        yield escape_row(row)


def escape_batch(batch: Iterable[Sequence[str]]) -> bytes:
    """Serialize a whole batch into a single byte string."""
    return b"".join(iter_escaped_rows(batch))


def escape_identifier(name: str) -> str:
    """Quote a table identifier with backticks, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"
