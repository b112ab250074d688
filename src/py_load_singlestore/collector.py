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
"""Turns batch outcomes into row counts or batch failures."""

import logging

from .exceptions import BatchLoadError
from .streaming import BatchOutcome

logger = logging.getLogger(__name__)


class ResultCollector:
    """Forwards row counts of loaded batches and raises for failed ones."""

    def __init__(self) -> None:
        self.batches = 0
        self.rows = 0
        self.failures = 0

    def collect(self, outcome: BatchOutcome) -> int:
        """Return the row count of ``outcome`` or raise its error.

        Raises:
            BatchLoadError: If the batch failed. The original error is chained.

        """
        if not outcome.succeeded:
            self.failures += 1
            msg = f"failed to load a batch of {outcome.batch_size} rows"
            raise BatchLoadError(msg, outcome.batch_size) from outcome.error

        row_count = outcome.row_count or 0
        self.batches += 1
        self.rows += row_count
        logger.debug("Batch %d loaded %d rows", self.batches, row_count)
        return row_count
