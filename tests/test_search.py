"""Tests for search_sheet."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from xlbook.contracts.errors import InvalidReferenceError, SheetNotFoundError
from xlbook.engine.cells import search_sheet, set_cell_value
from xlbook.engine.context import Workbook

SHEET1 = "xl/worksheets/sheet1.xml"


@pytest.fixture()
def shared_book(shared_strings_workbook: Path) -> Workbook:
    book = Workbook.open(shared_strings_workbook)
    yield book
    book.close()


class TestSearchSheet:
    def test_missing_sheet(self, shared_book):
        with pytest.raises(SheetNotFoundError, match="sheet Sheet4 does not exist"):
            search_sheet(shared_book, "Sheet4", "")

    def test_exact_match(self, shared_book):
        assert search_sheet(shared_book, "Sheet1", "X") == []
        assert search_sheet(shared_book, "Sheet1", "A") == ["A1"]

    def test_regex(self, shared_book):
        assert search_sheet(shared_book, "Sheet1", "[0-9]", regex=True) == []
        assert search_sheet(shared_book, "Sheet1", "^B", regex=True) == ["B1", "A2"]
        assert search_sheet(shared_book, "Sheet1", "a$", regex=True) == ["A2", "C3"]

    def test_empty_sheet(self, shared_book):
        assert search_sheet(shared_book, "Sheet2", "A") == []

    def test_sees_edits_made_in_memory(self, shared_book):
        set_cell_value(shared_book, "Sheet1", "D1", "Beta")
        assert search_sheet(shared_book, "Sheet1", "Beta") == ["D1", "A2"]

    def test_numbers_and_booleans_match_their_text(self, book, two_sheet_workbook: Path):
        set_cell_value(book, "Sheet1", "A1", True)
        assert search_sheet(book, "Sheet1", "") == []
        assert search_sheet(book, "Sheet1", "TRUE") == ["A1"]
        with Workbook.open(two_sheet_workbook) as numbers:
            assert search_sheet(numbers, "Sheet1", "1500") == ["B3"]
            assert search_sheet(numbers, "Sheet1", "^1", regex=True) == ["B2", "B3"]


class TestSearchMalformedRows:
    def test_non_numeric_row(self, book, replace_part):
        replace_part(book, SHEET1, (
            b'<worksheet><sheetData><row r="A"><c r="2" t="str"><v>A</v></c></row></sheetData></worksheet>'
        ))
        with pytest.raises(InvalidReferenceError, match="invalid row number 'A'"):
            search_sheet(book, "Sheet1", "A")

    @pytest.mark.parametrize("row", ["1_0", " 3", "+3", "3 "])
    def test_row_number_must_be_plain_digits(self, book, replace_part, row):
        replace_part(book, SHEET1, (
            b'<worksheet><sheetData><row r="' + row.encode() + b'"><c t="str"><v>A</v></c></row></sheetData></worksheet>'
        ))
        with pytest.raises(InvalidReferenceError, match=re.escape(f"invalid row number {row!r}")):
            search_sheet(book, "Sheet1", "A")

    def test_cell_without_row_number(self, book, replace_part):
        replace_part(book, SHEET1, (
            b'<worksheet><sheetData><row r="2"><c r="A" t="str"><v>A</v></c></row></sheetData></worksheet>'
        ))
        with pytest.raises(InvalidReferenceError, match="cannot convert cell 'A' to coordinates"):
            search_sheet(book, "Sheet1", "A")

    def test_row_zero(self, book, replace_part):
        replace_part(book, SHEET1, (
            b'<worksheet><sheetData><row r="0"><c r="A1" t="str"><v>A</v></c></row></sheetData></worksheet>'
        ))
        with pytest.raises(InvalidReferenceError, match=r"invalid cell reference \[1, 0\]"):
            search_sheet(book, "Sheet1", "A")
