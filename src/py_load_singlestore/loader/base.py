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
"""Defines the abstract base class for database loaders."""

import abc
from typing import IO, Any, ContextManager


class BaseLoader(abc.ABC):
    """Abstract Base Class for all database loaders.

    A loader is the connection provider of the pipeline: it hands out one
    connection per unit of work and knows the store's native bulk-load
    command. It follows the Adapter Pattern so the streaming machinery stays
    database agnostic.
    """

    @abc.abstractmethod
    def get_conn(self) -> ContextManager[Any]:
        """Open a connection for exactly one bulk load.

        Implementations must be context managers that yield a connection,
        commit when the block exits normally, roll back when it raises, and
        close the connection on every path.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def build_load_statement(self, target_table: str) -> Any:
        """Build the bulk-load command for ``target_table``.

        The table name must be quoted by the implementation; callers pass it
        through unmodified.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def bulk_load_stream(
        self,
        target_table: str,
        data_stream: IO[bytes],
        conn: Any,
    ) -> int:
        """Execute a native bulk load reading from ``data_stream``.

        The stream carries tab-separated, newline-terminated rows with
        backslash escapes. It may be a blocking pipe: implementations must read
        it incrementally until end-of-stream rather than assume it is seekable.

        Args:
            target_table: The name of the table to load data into.
            data_stream: A readable binary file-like object.
            conn: A connection obtained from :meth:`get_conn`.

        Returns:
            The number of rows the store reports as loaded.

        """
        raise NotImplementedError
