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
"""Provides a PostgreSQL loader using the native COPY command."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

import psycopg
from psycopg import sql

from .base import BaseLoader

COPY_CHUNK_SIZE = 64 * 1024


class PostgresLoader(BaseLoader):
    """A database loader for PostgreSQL that uses COPY FROM STDIN.

    COPY's default text format reads the same tab-separated, backslash-escaped
    dialect as LOAD DATA, so batches are serialized identically for both
    stores.
    """

    def __init__(self, dsn: str) -> None:
        """Initialize the loader with the database connection string.

        Args:
            dsn: A libpq connection string (e.g., "dbname=test user=postgres").

        """
        self.dsn = dsn

    @contextmanager
    def get_conn(self) -> Iterator[psycopg.Connection]:
        """Yield a connection inside a transaction.

        Commits on success or rolls back on error.
        """
        with psycopg.connect(self.dsn) as conn, conn.transaction():
            yield conn

    def build_load_statement(self, target_table: str) -> sql.Composed:
        """Build the COPY statement, quoting ``schema.table`` part by part."""
        table_sql = sql.SQL(".").join(map(sql.Identifier, target_table.split(".")))
        return sql.SQL("COPY {} FROM STDIN").format(table_sql)

    def bulk_load_stream(
        self,
        target_table: str,
        data_stream: IO[bytes],
        conn: psycopg.Connection,
    ) -> int:
        """Stream ``data_stream`` into ``target_table`` and return the row count."""
        copy_sql = self.build_load_statement(target_table)
        with conn.cursor() as cur:
            with cur.copy(copy_sql) as copy:
                while data := data_stream.read(COPY_CHUNK_SIZE):
                    copy.write(data)
            return cur.rowcount
