"""Defined names and the scope/reference rewrites that keep them consistent."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from xlbook.contracts.errors import (
    DefinedNameScopeNotFoundError,
    DuplicateDefinedNameError,
    SheetNotFoundError,
)
from xlbook.contracts.options import DefinedName
from xlbook.engine.coords import is_valid_cell
from xlbook.xml.tree import Element
from xlbook.xml.workbook import WorkbookPart

if TYPE_CHECKING:
    from xlbook.engine.context import Workbook

GLOBAL_SCOPE = "Workbook"
FILTER_DATABASE = "_xlnm._FilterDatabase"

_BARE_SHEET_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


# ---------------------------------------------------------------------------
# Sheet references inside formulas
# ---------------------------------------------------------------------------
def quote_sheet_name(name: str) -> str:
    """Return *name* as it must appear before ``!`` in a formula."""
    if _BARE_SHEET_RE.match(name) and not is_valid_cell(name):
        return name
    return "'" + name.replace("'", "''") + "'"


def _reference_pattern(name: str) -> re.Pattern[str]:
    quoted = re.escape("'" + name.replace("'", "''") + "'") + "!"
    bare = r"(?<![\w.'])" + re.escape(name) + "!"
    return re.compile(f"{quoted}|{bare}")


def references_sheet(formula: str, name: str) -> bool:
    return _reference_pattern(name).search(formula) is not None


def rewrite_sheet_references(formula: str, old: str, new: str) -> str:
    replacement = quote_sheet_name(new) + "!"
    return _reference_pattern(old).sub(lambda _: replacement, formula)


def _local_sheet_id(element: Element) -> int | None:
    value = element.get("localSheetId")
    if value is None or not value.strip().isdigit():
        return None
    return int(value)


# ---------------------------------------------------------------------------
# Consistency passes (caller holds the document lock)
# ---------------------------------------------------------------------------
def adjust_for_deleted_sheet(wb: WorkbookPart | None, index: int, sheet_name: str | None = None) -> int:
    """Drop names tied to the deleted sheet and shift later scopes down by one.

    Names scoped to *index* go, names scoped after it move down, and global
    names whose formula points at *sheet_name* go. The collection is replaced
    in one step. Returns the number of names removed.
    """
    if wb is None:
        return 0
    entries = wb.defined_names()
    if not entries:
        return 0
    kept: list[Element] = []
    changed = False
    for dn in entries:
        local = _local_sheet_id(dn)
        if local is not None:
            if local == index:
                changed = True
                continue
            if local > index:
                dn.set("localSheetId", local - 1)
                changed = True
        elif sheet_name is not None and references_sheet(dn.text, sheet_name):
            changed = True
            continue
        kept.append(dn)
    if changed:
        wb.replace_defined_names(kept)
    return len(entries) - len(kept)


def rename_sheet_references(wb: WorkbookPart, old: str, new: str) -> int:
    """Point every formula that names *old* at *new*. Returns the number rewritten."""
    entries = wb.defined_names()
    count = 0
    for dn in entries:
        text = dn.text
        rewritten = rewrite_sheet_references(text, old, new)
        if rewritten != text:
            dn.text = rewritten
            count += 1
    if count:
        wb.replace_defined_names(entries)
    return count


def remap_scopes(wb: WorkbookPart, mapping: dict[int, int]) -> None:
    """Renumber ``localSheetId`` after the sheet order changed (old index -> new)."""
    entries = wb.defined_names()
    changed = False
    for dn in entries:
        local = _local_sheet_id(dn)
        if local is not None and mapping.get(local, local) != local:
            dn.set("localSheetId", mapping[local])
            changed = True
    if changed:
        wb.replace_defined_names(entries)


def set_builtin_name(wb: WorkbookPart, name: str, index: int, refers_to: str) -> None:
    """Create or overwrite a hidden built-in name (``_xlnm.*``) scoped to sheet *index*."""
    entries = wb.defined_names()
    for dn in entries:
        if dn.get("name") == name and _local_sheet_id(dn) == index:
            dn.text = refers_to
            break
    else:
        element = Element(wb.tree.prefix + "definedName", {"name": name, "localSheetId": index, "hidden": True})
        element.text = refers_to
        entries.append(element)
    wb.replace_defined_names(entries)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def _scope_index(book: "Workbook", scope: str | None) -> int | None:
    if not scope:
        return None
    index = book.get_sheet_index(scope)
    if index == -1:
        if scope == GLOBAL_SCOPE:
            return None
        raise SheetNotFoundError(scope)
    return index


def get_defined_names(book: "Workbook") -> list[DefinedName]:
    """All defined names in document order; ``scope`` is ``None`` for workbook scope."""
    with book.lock:
        sheets = book.get_sheet_list()
        result: list[DefinedName] = []
        for dn in book.workbook_part().defined_names():
            local = _local_sheet_id(dn)
            result.append(DefinedName(
                name=dn.get("name", ""),
                refers_to=dn.text,
                scope=sheets[local] if local is not None and local < len(sheets) else None,
                comment=dn.get("comment", ""),
                hidden=dn.get("hidden") in ("1", "true"),
            ))
        return result


def set_defined_name(book: "Workbook", definition: DefinedName) -> None:
    """Add a defined name. ``(name, scope)`` must be new."""
    with book.lock:
        local = _scope_index(book, definition.scope)
        wb = book.workbook_part()
        entries = wb.defined_names()
        for dn in entries:
            if dn.get("name") == definition.name and _local_sheet_id(dn) == local:
                raise DuplicateDefinedNameError(definition.name, definition.scope or GLOBAL_SCOPE)
        element = Element(wb.tree.prefix + "definedName", {
            "name": definition.name,
            "comment": definition.comment or None,
            "hidden": True if definition.hidden else None,
            "localSheetId": local,
        })
        element.text = definition.refers_to
        wb.replace_defined_names(entries + [element])


def delete_defined_name(book: "Workbook", name: str, scope: str | None = None) -> None:
    """Remove *name* from *scope* (workbook scope when ``None``)."""
    label = scope or GLOBAL_SCOPE
    with book.lock:
        try:
            local = _scope_index(book, scope)
        except SheetNotFoundError:
            raise DefinedNameScopeNotFoundError(name, label) from None
        wb = book.workbook_part()
        entries = wb.defined_names()
        kept = [dn for dn in entries if not (dn.get("name") == name and _local_sheet_id(dn) == local)]
        if len(kept) == len(entries):
            raise DefinedNameScopeNotFoundError(name, label)
        wb.replace_defined_names(kept)
