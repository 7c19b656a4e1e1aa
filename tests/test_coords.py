"""Tests for A1-reference parsing and formatting."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from xlbook.contracts.errors import InvalidReferenceError
from xlbook.engine.coords import (
    MAX_COLUMNS,
    MAX_ROWS,
    cell_to_coordinates,
    column_name_to_number,
    column_number_to_name,
    coordinates_to_cell,
    coordinates_to_range,
    is_valid_cell,
    parse_row_number,
    range_to_coordinates,
    split_sqref,
)

columns = st.integers(min_value=1, max_value=MAX_COLUMNS)
rows = st.integers(min_value=1, max_value=MAX_ROWS)


@pytest.mark.parametrize(
    ("name", "number"),
    [("A", 1), ("Z", 26), ("AA", 27), ("AK", 37), ("xfd", 16384)],
)
def test_column_name_to_number(name, number):
    assert column_name_to_number(name) == number
    assert column_number_to_name(number) == name.upper()


@pytest.mark.parametrize("name", ["", "1", "A1", "XFE", "ZZZZ"])
def test_column_name_rejected(name):
    with pytest.raises(InvalidReferenceError):
        column_name_to_number(name)


def test_cell_to_coordinates():
    assert cell_to_coordinates("K16") == (11, 16)
    assert cell_to_coordinates("$B$2") == (2, 2)
    assert cell_to_coordinates("xfd1048576") == (MAX_COLUMNS, MAX_ROWS)


@pytest.mark.parametrize("ref", ["A", "1", "A0", "A1048577", "XFE1", "A1B", " A1", "A-1"])
def test_cell_to_coordinates_rejected(ref):
    with pytest.raises(InvalidReferenceError) as exc:
        cell_to_coordinates(ref)
    assert exc.value.code == "ERR_RANGE_INVALID"
    assert exc.value.ref == ref


def test_bare_column_message_names_the_reference():
    with pytest.raises(InvalidReferenceError, match="cannot convert cell 'A' to coordinates"):
        cell_to_coordinates("A")


def test_coordinates_to_cell():
    assert coordinates_to_cell(11, 16) == "K16"
    assert coordinates_to_cell(2, 2, absolute=True) == "$B$2"


@pytest.mark.parametrize(("col", "row"), [(0, 1), (1, 0), (MAX_COLUMNS + 1, 1), (1, MAX_ROWS + 1)])
def test_coordinates_to_cell_out_of_range(col, row):
    with pytest.raises(InvalidReferenceError, match=rf"invalid cell reference \[{col}, {row}\]"):
        coordinates_to_cell(col, row)


def test_range_is_normalized_to_top_left_first():
    assert range_to_coordinates("D5:A1") == (1, 1, 4, 5)
    assert range_to_coordinates("B3") == (2, 3, 2, 3)
    assert coordinates_to_range(1, 1, 4, 5, absolute=True) == "$A$1:$D$5"


@pytest.mark.parametrize("ref", ["A1:", ":B2", "A1:B2:C3", "A1:XFE2"])
def test_range_rejected(ref):
    with pytest.raises(InvalidReferenceError):
        range_to_coordinates(ref)


def test_split_sqref():
    assert split_sqref("A1 B2:C3") == ["A1", "B2:C3"]
    with pytest.raises(InvalidReferenceError):
        split_sqref("   ")
    with pytest.raises(InvalidReferenceError):
        split_sqref("A1 Q")


def test_parse_row_number():
    assert parse_row_number("42") == 42
    with pytest.raises(InvalidReferenceError, match="invalid row number 'A'"):
        parse_row_number("A")


def test_is_valid_cell():
    assert is_valid_cell("C3")
    assert not is_valid_cell("Sheet1")
    assert not is_valid_cell("R1C1")


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@given(columns, rows)
def test_cell_text_round_trip(col, row):
    text = coordinates_to_cell(col, row)
    assert cell_to_coordinates(text) == (col, row)
    assert coordinates_to_cell(*cell_to_coordinates(text)) == text


@given(columns)
def test_column_name_round_trip(col):
    assert column_name_to_number(column_number_to_name(col)) == col


@given(columns, rows, columns, rows)
def test_range_corners_are_ordered(c1, r1, c2, r2):
    ref = f"{coordinates_to_cell(c1, r1)}:{coordinates_to_cell(c2, r2)}"
    left, top, right, bottom = range_to_coordinates(ref)
    assert (left, top, right, bottom) == (min(c1, c2), min(r1, r2), max(c1, c2), max(r1, r2))
