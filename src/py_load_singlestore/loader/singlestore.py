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
"""Provides a SingleStore loader using LOAD DATA LOCAL INFILE."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import singlestoredb as s2

from ..escaping import escape_identifier
from .base import BaseLoader

logger = logging.getLogger(__name__)

# The driver substitutes the bound ``infile_stream`` for this file name.
LOCAL_INFILE_PLACEHOLDER = ":stream:"
LOAD_DATA_TEMPLATE = "LOAD DATA LOCAL INFILE '{placeholder}' INTO TABLE {table}"


class SingleStoreLoader(BaseLoader):
    """A database loader for SingleStore that streams rows as a local infile."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        user: str = "root",
        password: str = "",
        database: str | None = None,
        **connect_kwargs: Any,
    ) -> None:
        """Store the connection parameters; no connection is opened yet.

        Args:
            host: Hostname of the SingleStore aggregator.
            port: MySQL protocol port.
            user: Database user.
            password: Password of ``user``.
            database: Default database, required when the table name is not
                      qualified.
            connect_kwargs: Extra keyword arguments for ``singlestoredb.connect``.

        """
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connect_kwargs = connect_kwargs

    @contextmanager
    def get_conn(self) -> Iterator[Any]:
        """Open a connection with local infile support enabled.

        Autocommit is off so that a failed batch can be rolled back. Commits
        on success, rolls back on error, and always closes.
        """
        conn = s2.connect(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            local_infile=True,
            autocommit=False,
            **self.connect_kwargs,
        )
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            conn.close()

    def build_load_statement(self, target_table: str) -> str:
        """Build the LOAD DATA command with a quoted table identifier."""
        return LOAD_DATA_TEMPLATE.format(
            placeholder=LOCAL_INFILE_PLACEHOLDER,
            table=escape_identifier(target_table),
        )

    def bulk_load_stream(
        self,
        target_table: str,
        data_stream: IO[bytes],
        conn: Any,
    ) -> int:
        """Run LOAD DATA LOCAL INFILE with ``data_stream`` bound as the file."""
        statement = self.build_load_statement(target_table)
        logger.debug("Executing %s", statement)
        with conn.cursor() as cur:
            cur.execute(statement, infile_stream=data_stream)
            return cur.rowcount
