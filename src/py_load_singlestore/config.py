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
"""Manages the application's configuration using Pydantic."""

from collections.abc import Callable, Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .loader.base import BaseLoader
from .pipe import DEFAULT_PIPE_BUFFER_SIZE

DEFAULT_BATCH_SIZE = 100000


class Settings(BaseSettings):
    """Manages configuration for the application.

    Reads settings from environment variables with the prefix 'S2LOAD_'.
    """

    model_config = SettingsConfigDict(env_prefix="S2LOAD_")

    backend: Literal["singlestore", "postgres"] = "singlestore"

    # Database connection settings
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "root"
    # S105: Empty password is used for local development.
    # In production, this should be set via environment variables.
    db_password: str = ""
    db_name: str = "ingest"

    # Pipeline settings
    batch_size: PositiveInt = DEFAULT_BATCH_SIZE
    pipe_buffer_size: PositiveInt = DEFAULT_PIPE_BUFFER_SIZE

    @computed_field
    @property
    def postgres_conninfo(self) -> str:
        """Construct the libpq connection string from individual settings."""
        return (
            f"host='{self.db_host}' port='{self.db_port}' "
            f"user='{self.db_user}' password='{self.db_password}' "
            f"dbname='{self.db_name}'"
        )


class WriteConfig(BaseModel):
    """Immutable, validated settings of one bulk write.

    Every field is checked when the model is built, so a misconfigured
    pipeline fails before it sees its first record.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    loader: BaseLoader
    table: str = Field(min_length=1)
    user_data_mapper: Callable[[Any], Sequence[str]]
    batch_size: PositiveInt = DEFAULT_BATCH_SIZE
    pipe_buffer_size: PositiveInt = DEFAULT_PIPE_BUFFER_SIZE
