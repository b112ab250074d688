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
"""Command line entry point for loading delimited files."""

import csv
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import ValidationError

from .config import Settings
from .exceptions import BulkLoadError, ConfigurationError
from .loader.base import BaseLoader
from .loader.postgres import PostgresLoader
from .loader.singlestore import SingleStoreLoader
from .write import BulkWrite

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer()


def load_config(config_file: Path | None) -> dict[str, Any]:
    """Loads configuration overrides from a YAML file."""
    if config_file:
        try:
            with open(config_file) as f:
                overrides = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Config file not found: %s", config_file)
            return {}
        except yaml.YAMLError as e:
            msg = f"config file {config_file} is not valid YAML: {e}"
            raise ConfigurationError(msg) from e
        if not isinstance(overrides, dict):
            msg = f"config file {config_file} must contain a mapping of settings"
            raise ConfigurationError(msg)
        return overrides
    return {}


def load_settings(config_file: Path | None) -> Settings:
    """Build the settings from the environment and the YAML overrides."""
    overrides = load_config(config_file)
    try:
        return Settings(**overrides)
    except ValidationError as e:
        msg = f"invalid settings: {e}"
        raise ConfigurationError(msg) from e


def build_loader(settings: Settings) -> BaseLoader:
    """Create the loader for the configured backend."""
    if settings.backend == "postgres":
        return PostgresLoader(dsn=settings.postgres_conninfo)
    return SingleStoreLoader(
        host=settings.db_host,
        port=settings.db_port,
        user=settings.db_user,
        password=settings.db_password,
        database=settings.db_name,
    )


def read_records(path: Path, delimiter: str, skip_header: bool) -> Iterator[list[str]]:
    """Yield the records of a delimited text file."""
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f, delimiter=delimiter)
        if skip_header:
            next(reader, None)
        yield from reader


@app.callback()
def cli() -> None:
    """Bulk-load delimited files into SingleStore or PostgreSQL."""


@app.command()
def load(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to load."),
    table: str = typer.Option(..., "--table", "-t", help="Destination table."),
    batch_size: int = typer.Option(None, help="Rows per bulk-load command."),
    pipe_buffer_size: int = typer.Option(None, help="Bytes buffered per batch stream."),
    delimiter: str = typer.Option(",", help="Field delimiter of FILE."),
    skip_header: bool = typer.Option(False, help="Ignore the first line of FILE."),
    config_file: Path = typer.Option(None, help="Path to YAML config file."),
) -> None:
    """Load FILE into TABLE using the store's native bulk-load command."""
    try:
        settings = load_settings(config_file)
        writer = BulkWrite(
            loader=build_loader(settings),
            table=table,
            user_data_mapper=list,
            batch_size=batch_size if batch_size is not None else settings.batch_size,
            pipe_buffer_size=(
                pipe_buffer_size
                if pipe_buffer_size is not None
                else settings.pipe_buffer_size
            ),
        )
        total = writer.write_all(read_records(file, delimiter, skip_header))
    except BulkLoadError as e:
        logger.error("Load failed: %s", e, exc_info=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Loaded {total} rows into {table}.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
