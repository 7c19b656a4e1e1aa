"""Tests for defined names and the rewrites that follow sheet changes."""

from __future__ import annotations

from pathlib import Path

import pytest

from xlbook.contracts.errors import (
    DefinedNameScopeNotFoundError,
    DuplicateDefinedNameError,
    SheetNotFoundError,
)
from xlbook.contracts.options import DefinedName
from xlbook.engine.context import Workbook
from xlbook.engine.names import (
    adjust_for_deleted_sheet,
    delete_defined_name,
    get_defined_names,
    quote_sheet_name,
    references_sheet,
    rewrite_sheet_references,
    set_defined_name,
)

AMOUNT = "Sheet1!$A$2:$D$5"


def _raw_scopes(book: Workbook) -> list[tuple[str, str | None]]:
    return [(dn.get("name"), dn.get("localSheetId")) for dn in book.workbook_part().defined_names()]


@pytest.fixture()
def three_sheets(book: Workbook) -> Workbook:
    book.new_sheet("Sheet2")
    book.new_sheet("Sheet3")
    return book


# ---------------------------------------------------------------------------
# Create / delete
# ---------------------------------------------------------------------------


class TestDefinedNames:
    def test_same_name_once_per_scope(self, book):
        set_defined_name(book, DefinedName(name="Amount", refers_to=AMOUNT, comment="defined name comment", scope="Sheet1"))
        set_defined_name(book, DefinedName(name="Amount", refers_to=AMOUNT, comment="defined name comment"))
        with pytest.raises(DuplicateDefinedNameError):
            set_defined_name(book, DefinedName(name="Amount", refers_to=AMOUNT, comment="defined name comment"))
        with pytest.raises(DefinedNameScopeNotFoundError):
            delete_defined_name(book, "No Exist Defined Name")

        assert get_defined_names(book)[1].refers_to == AMOUNT
        delete_defined_name(book, "Amount")
        remaining = get_defined_names(book)
        assert len(remaining) == 1
        assert remaining[0].refers_to == AMOUNT
        assert remaining[0].scope == "Sheet1"

    def test_attributes_round_trip(self, book):
        set_defined_name(book, DefinedName(name="Hidden", refers_to="Sheet1!$B$1", comment="note", hidden=True))
        (found,) = get_defined_names(book)
        assert found == DefinedName(name="Hidden", refers_to="Sheet1!$B$1", comment="note", hidden=True)

    def test_unknown_scope(self, book):
        with pytest.raises(SheetNotFoundError):
            set_defined_name(book, DefinedName(name="X", refers_to="1", scope="SheetN"))
        with pytest.raises(DefinedNameScopeNotFoundError, match="SheetN"):
            delete_defined_name(book, "X", "SheetN")

    def test_workbook_keyword_means_global_scope(self, book):
        set_defined_name(book, DefinedName(name="Rate", refers_to="0.2", scope="Workbook"))
        assert get_defined_names(book)[0].scope is None
        delete_defined_name(book, "Rate", "Workbook")
        assert get_defined_names(book) == []

    def test_deleting_the_last_name_drops_the_section(self, book):
        set_defined_name(book, DefinedName(name="Rate", refers_to="0.2"))
        assert book.workbook_part().section("definedNames") is not None
        delete_defined_name(book, "Rate")
        assert book.workbook_part().section("definedNames") is None

    def test_names_survive_save(self, book, tmp_path: Path):
        set_defined_name(book, DefinedName(name="Amount", refers_to=AMOUNT, scope="Sheet1"))
        out = tmp_path / "names.xlsx"
        book.save_as(out)
        with Workbook.open(out) as reopened:
            assert [(n.name, n.scope, n.refers_to) for n in get_defined_names(reopened)] == [
                ("Amount", "Sheet1", AMOUNT)
            ]

    def test_name_is_required(self):
        with pytest.raises(ValueError):
            DefinedName(name="", refers_to="1")


# ---------------------------------------------------------------------------
# Sheet changes
# ---------------------------------------------------------------------------


class TestSheetDeletion:
    def test_scopes_shift_down(self, three_sheets):
        set_defined_name(three_sheets, DefinedName(name="First", refers_to="1", scope="Sheet1"))
        set_defined_name(three_sheets, DefinedName(name="Second", refers_to="2", scope="Sheet2"))
        set_defined_name(three_sheets, DefinedName(name="Third", refers_to="3", scope="Sheet3"))
        three_sheets.delete_sheet("Sheet2")
        assert _raw_scopes(three_sheets) == [("First", "0"), ("Third", "1")]
        assert [(n.name, n.scope) for n in get_defined_names(three_sheets)] == [("First", "Sheet1"), ("Third", "Sheet3")]

    def test_global_names_pointing_at_the_sheet_go(self, three_sheets):
        set_defined_name(three_sheets, DefinedName(name="Gone", refers_to="Sheet2!$A$1"))
        set_defined_name(three_sheets, DefinedName(name="Kept", refers_to="Sheet1!$A$1"))
        set_defined_name(three_sheets, DefinedName(name="Similar", refers_to="Sheet22!$A$1"))
        three_sheets.delete_sheet("Sheet2")
        assert [n.name for n in get_defined_names(three_sheets)] == ["Kept", "Similar"]

    def test_nothing_to_adjust(self, book):
        assert adjust_for_deleted_sheet(None, 0) == 0
        assert adjust_for_deleted_sheet(book.workbook_part(), 0) == 0


class TestSheetRenameAndMove:
    def test_rename_rewrites_formulas(self, three_sheets):
        set_defined_name(three_sheets, DefinedName(name="Amount", refers_to=AMOUNT, scope="Sheet1"))
        set_defined_name(three_sheets, DefinedName(name="Both", refers_to="SUM(Sheet1!A1,'Sheet1'!B2,Sheet2!C3)"))
        three_sheets.set_sheet_name("Sheet1", "My Data")
        found = {n.name: n for n in get_defined_names(three_sheets)}
        assert found["Amount"].refers_to == "'My Data'!$A$2:$D$5"
        assert found["Amount"].scope == "My Data"
        assert found["Both"].refers_to == "SUM('My Data'!A1,'My Data'!B2,Sheet2!C3)"

    def test_move_remaps_scopes(self, three_sheets):
        set_defined_name(three_sheets, DefinedName(name="Last", refers_to="1", scope="Sheet3"))
        set_defined_name(three_sheets, DefinedName(name="First", refers_to="1", scope="Sheet1"))
        three_sheets.move_sheet("Sheet3", 0)
        assert _raw_scopes(three_sheets) == [("Last", "0"), ("First", "1")]
        assert [n.scope for n in get_defined_names(three_sheets)] == ["Sheet3", "Sheet1"]


# ---------------------------------------------------------------------------
# Formula reference helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("name", "quoted"),
    [("Sales", "Sales"), ("My Data", "'My Data'"), ("Bob's", "'Bob''s'"), ("A1", "'A1'"), ("2024", "'2024'")],
)
def test_quote_sheet_name(name, quoted):
    assert quote_sheet_name(name) == quoted


def test_references_sheet():
    assert references_sheet("Sheet1!A1", "Sheet1")
    assert references_sheet("'My Data'!A1", "My Data")
    assert not references_sheet("Sheet11!A1", "Sheet1")
    assert not references_sheet("XSheet1!A1", "Sheet1")
    assert not references_sheet("Sheet1", "Sheet1")


def test_rewrite_with_quotes_inside_names():
    assert rewrite_sheet_references("'Bob''s'!A1+1", "Bob's", "Ann") == "Ann!A1+1"
