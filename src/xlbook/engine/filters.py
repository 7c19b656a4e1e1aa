"""Worksheet auto-filter ranges and their hidden ``_FilterDatabase`` names."""

from __future__ import annotations

from typing import TYPE_CHECKING

from xlbook.contracts.errors import SheetNotFoundError
from xlbook.engine import names
from xlbook.engine.coords import coordinates_to_range, range_to_coordinates

if TYPE_CHECKING:
    from xlbook.engine.context import Workbook


def auto_filter(book: "Workbook", sheet: str, ref: str) -> str:
    """Put an auto-filter over *ref* and register its filter database name.

    Any existing filter on the sheet, including its column criteria, is
    replaced. Returns the normalized range.
    """
    with book.lock:
        index = book.get_sheet_index(sheet)
        if index == -1:
            raise SheetNotFoundError(sheet)
        col1, row1, col2, row2 = range_to_coordinates(ref)
        area = coordinates_to_range(col1, row1, col2, row2)
        path = book.sheet_part_path(sheet)
        with book.store.locked(path):
            element = book.worksheet_part(path).edit("autoFilter")
            element.attrs = {"ref": area}
            element.children = []
        formula = f"{names.quote_sheet_name(sheet)}!{coordinates_to_range(col1, row1, col2, row2, absolute=True)}"
        names.set_builtin_name(book.workbook_part(), names.FILTER_DATABASE, index, formula)
    return area


def get_auto_filter(book: "Workbook", sheet: str) -> str | None:
    with book.worksheet(sheet) as ws:
        element = ws.section("autoFilter")
        return None if element is None else element.get("ref")


def remove_auto_filter(book: "Workbook", sheet: str) -> None:
    """Drop the sheet's auto-filter and its filter database name; no filter is a no-op."""
    with book.lock:
        index = book.get_sheet_index(sheet)
        if index == -1:
            raise SheetNotFoundError(sheet)
        path = book.sheet_part_path(sheet)
        with book.store.locked(path):
            book.worksheet_part(path).drop("autoFilter")
        wb = book.workbook_part()
        entries = wb.defined_names()
        kept = [
            dn for dn in entries
            if not (dn.get("name") == names.FILTER_DATABASE and dn.get("localSheetId") == str(index))
        ]
        if len(kept) != len(entries):
            wb.replace_defined_names(kept)
