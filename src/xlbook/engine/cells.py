"""Cell values and sheet search."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from xlbook.engine.coords import cell_to_coordinates, coordinates_to_cell

if TYPE_CHECKING:
    from xlbook.engine.context import Workbook


def set_cell_value(book: "Workbook", sheet: str, ref: str, value: Any) -> None:
    """Write a bool, number, string or ``None`` (clear) into *ref*. Any formula is dropped."""
    col, row = cell_to_coordinates(ref)
    if value is not None and not isinstance(value, (bool, int, float, str)):
        raise TypeError(f"unsupported cell value type: {type(value).__name__}")
    with book.worksheet(sheet) as ws:
        cell = ws.edit_sheet_data().cell(col, row, create=True)
        cell.set_value(value)


def get_cell_value(book: "Workbook", sheet: str, ref: str) -> str:
    col, row = cell_to_coordinates(ref)
    shared = book.shared_strings()
    with book.worksheet(sheet) as ws:
        cell = ws.sheet_data.cell(col, row)
        return "" if cell is None else cell.text(shared)


def search_sheet(book: "Workbook", sheet: str, value: str, regex: bool = False) -> list[str]:
    """References of cells whose text equals *value* (or matches it, when *regex*).

    Results follow row order, then column order within a row.
    """
    pattern = re.compile(value) if regex else None
    shared = book.shared_strings()
    result: list[str] = []
    with book.worksheet(sheet) as ws:
        for number, row in ws.sheet_data.iter_rows():
            for col, cell in row.iter_cells():
                text = cell.text(shared)
                matched = pattern.search(text) is not None if pattern else text == value
                if matched:
                    result.append(coordinates_to_cell(col, number))
    return result
