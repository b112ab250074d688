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
"""Streaming bulk loads into SingleStore (and PostgreSQL) from Python iterables."""

from .batching import Batcher, batched
from .collector import ResultCollector
from .config import Settings, WriteConfig
from .escaping import escape_batch, escape_cell, escape_identifier, escape_row
from .exceptions import (
    BatchLoadError,
    BulkLoadError,
    ConfigurationError,
    TransmissionError,
)
from .streaming import BatchOutcome, LoadState, StreamingBulkLoader
from .write import BulkWrite

__all__ = [
    "BatchLoadError",
    "BatchOutcome",
    "Batcher",
    "BulkLoadError",
    "BulkWrite",
    "ConfigurationError",
    "LoadState",
    "ResultCollector",
    "Settings",
    "StreamingBulkLoader",
    "TransmissionError",
    "WriteConfig",
    "batched",
    "escape_batch",
    "escape_cell",
    "escape_identifier",
    "escape_row",
]
