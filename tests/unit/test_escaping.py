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

import itertools

import pytest

from helpers import parse_rows
from py_load_singlestore.escaping import (
    escape_batch,
    escape_cell,
    escape_identifier,
    escape_row,
    iter_escaped_rows,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("cell", "expected"),
    [
        ("plain", "plain"),
        ("", ""),
        ("a\\b", "a\\\\b"),
        ("a\nb", "a\\nb"),
        ("a\tb", "a\\tb"),
        # A literal backslash followed by 'n' must not turn into a newline escape.
        ("\\n", "\\\\n"),
        ("\\\n\t", "\\\\\\n\\t"),
    ],
)
def test_escape_cell(cell, expected):
    assert escape_cell(cell) == expected


def test_escape_row_uses_tabs_and_terminates_with_newline():
    assert escape_row(["1", "two", ""]) == b"1\ttwo\t\n"


def test_escape_row_encodes_utf8():
    assert escape_row(["café", "日本"]) == "café\t日本\n".encode("utf-8")


def test_escape_row_rejects_a_row_without_cells():
    with pytest.raises(ValueError, match="row has no cells"):
        escape_row([])


def test_escape_row_keeps_a_single_empty_cell():
    assert escape_row([""]) == b"\n"
    assert parse_rows(escape_row([""])) == [("",)]


def test_iter_escaped_rows_preserves_row_order():
    batch = [(str(i), f"name {i}") for i in range(50)]
    fragments = list(iter_escaped_rows(batch))

    assert len(fragments) == 50
    assert parse_rows(b"".join(fragments)) == batch


def test_escape_batch_round_trips_every_special_character_combination():
    """Escaping followed by parsing yields the original cells exactly."""
    alphabet = ["\\", "\t", "\n", "n", "t", "x"]
    cells = [
        "".join(chars)
        for length in range(4)
        for chars in itertools.product(alphabet, repeat=length)
    ]
    batch = [(cell, cell[::-1]) for cell in cells]

    assert parse_rows(escape_batch(batch)) == batch


def test_escape_batch_of_no_rows_is_empty():
    assert escape_batch([]) == b""


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("t", "`t`"),
        ("my table", "`my table`"),
        ("we`ird", "`we``ird`"),
        ("``", "``````"),
        ("db.t", "`db.t`"),
    ],
)
def test_escape_identifier(name, expected):
    assert escape_identifier(name) == expected
