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
"""Exception hierarchy for the bulk-load pipeline."""


class BulkLoadError(Exception):
    """Base class for all errors raised by py-load-singlestore."""


class ConfigurationError(BulkLoadError, ValueError):
    """Raised when a pipeline is built with missing or invalid settings.

    Detected eagerly, before any record is processed.
    """


class TransmissionError(BulkLoadError, OSError):
    """Raised when the escaped batch could not be fully written to the store.

    The load command may have reported a row count, but the data it received
    is possibly truncated, so the batch is treated as unwritten.
    """


class BatchLoadError(BulkLoadError):
    """Raised when one batch fails to load.

    The underlying driver or transmission error is chained as ``__cause__``.
    """

    def __init__(self, message: str, batch_size: int) -> None:
        super().__init__(message)
        self.batch_size = batch_size
