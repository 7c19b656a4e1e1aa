"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook as OpenpyxlWorkbook

from xlbook.engine.context import Workbook


@pytest.fixture()
def replace_part():
    """Swap the stored bytes of a part and clear its materialized flag."""

    def _replace(book: Workbook, path: str, data: bytes) -> None:
        book.store.store(path, data)
        book.cache.discard(path)

    return _replace


@pytest.fixture()
def book() -> Workbook:
    """A fresh one-sheet workbook held in memory."""
    wb = Workbook.new()
    yield wb
    wb.close()


@pytest.fixture()
def shared_strings_workbook(tmp_path: Path) -> Path:
    """Text-only workbook written by openpyxl, so every value is a shared string."""
    wb = OpenpyxlWorkbook()
    ws = wb.active
    ws.title = "Sheet1"
    ws["A1"] = "A"
    ws["B1"] = "B"
    ws["A2"] = "Beta"
    ws["C3"] = "Alpha"
    wb.create_sheet("Sheet2")
    wb.create_sheet("Sheet3")

    path = tmp_path / "SharedStrings.xlsx"
    wb.save(str(path))
    wb.close()
    return path


@pytest.fixture()
def two_sheet_workbook(tmp_path: Path) -> Path:
    """Two sheets: numbers on Sheet1, a cross-sheet formula on Sheet2."""
    wb = OpenpyxlWorkbook()
    ws = wb.active
    ws.title = "Sheet1"
    ws.append(["Region", "Sales"])
    ws.append(["North", 1000])
    ws.append(["South", 1500])
    ws2 = wb.create_sheet("Sheet2")
    ws2["A1"] = "Total"
    ws2["B1"] = "=SUM(Sheet1!B2:B3)"

    path = tmp_path / "Book1.xlsx"
    wb.save(str(path))
    wb.close()
    return path
