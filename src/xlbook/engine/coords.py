"""Coordinate algebra: A1-style references <-> 1-based (column, row) pairs."""

from __future__ import annotations

import re

from openpyxl.utils.cell import column_index_from_string, get_column_letter

from xlbook.contracts.errors import InvalidReferenceError

MAX_COLUMNS = 16384
MAX_ROWS = 1048576

_CELL_RE = re.compile(r"^\$?([A-Za-z]{1,3})\$?(\d+)$")
_COLUMN_RE = re.compile(r"^\$?([A-Za-z]{1,3})$")
_DIGITS_RE = re.compile(r"[0-9]+")


def column_name_to_number(name: str) -> int:
    """Convert a column name (``A``, ``AK``, ``XFD``) to its 1-based index."""
    m = _COLUMN_RE.match(name.strip())
    if not m:
        raise InvalidReferenceError(name, "invalid column name")
    number = column_index_from_string(m.group(1).upper())
    if number > MAX_COLUMNS:
        raise InvalidReferenceError(name, "column number exceeds maximum limit")
    return number


def column_number_to_name(number: int) -> str:
    if number < 1 or number > MAX_COLUMNS:
        raise InvalidReferenceError(str(number), "column number out of range")
    return get_column_letter(number)


def cell_to_coordinates(ref: str) -> tuple[int, int]:
    """Split ``K16`` into ``(11, 16)``. ``$`` markers are ignored."""
    m = _CELL_RE.match(ref)
    if not m:
        raise InvalidReferenceError(ref, f"invalid cell name {ref!r}")
    col = column_index_from_string(m.group(1).upper())
    row = int(m.group(2))
    if col > MAX_COLUMNS:
        raise InvalidReferenceError(ref, "column number exceeds maximum limit")
    if row < 1:
        raise InvalidReferenceError(ref, f"invalid cell name {ref!r}")
    if row > MAX_ROWS:
        raise InvalidReferenceError(ref, "row number exceeds maximum limit")
    return col, row


def coordinates_to_cell(col: int, row: int, absolute: bool = False) -> str:
    """Join ``(11, 16)`` into ``K16`` (``$K$16`` when *absolute*)."""
    if col < 1 or row < 1 or col > MAX_COLUMNS or row > MAX_ROWS:
        raise InvalidReferenceError.for_coordinates(col, row)
    letters = get_column_letter(col)
    if absolute:
        return f"${letters}${row}"
    return f"{letters}{row}"


def range_to_coordinates(ref: str) -> tuple[int, int, int, int]:
    """Parse ``A1:D5`` into ``(col1, row1, col2, row2)``, top-left corner first."""
    parts = ref.split(":")
    if len(parts) > 2 or not all(parts):
        raise InvalidReferenceError(ref, "invalid range reference")
    col1, row1 = cell_to_coordinates(parts[0])
    col2, row2 = cell_to_coordinates(parts[-1])
    return min(col1, col2), min(row1, row2), max(col1, col2), max(row1, row2)


def coordinates_to_range(col1: int, row1: int, col2: int, row2: int, absolute: bool = False) -> str:
    return f"{coordinates_to_cell(col1, row1, absolute)}:{coordinates_to_cell(col2, row2, absolute)}"


def split_sqref(sqref: str) -> list[str]:
    """Validate a space-separated list of ranges and return its items."""
    items = sqref.split()
    if not items:
        raise InvalidReferenceError(sqref, "empty range list")
    for item in items:
        range_to_coordinates(item)
    return items


def parse_index(value: str, what: str) -> int:
    """Parse a stored 1-based index attribute; only ASCII digits are accepted."""
    if not _DIGITS_RE.fullmatch(value):
        raise InvalidReferenceError(value, f"invalid {what} {value!r}")
    return int(value)


def parse_row_number(value: str) -> int:
    """Parse the ``r`` attribute of a stored ``<row>`` element."""
    return parse_index(value, "row number")


def is_valid_cell(ref: str) -> bool:
    try:
        cell_to_coordinates(ref)
    except InvalidReferenceError:
        return False
    return True
