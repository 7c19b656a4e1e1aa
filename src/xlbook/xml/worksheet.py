"""Worksheet part model: sparse rows/cells plus the sections the engine edits."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from xlbook.engine.coords import cell_to_coordinates, coordinates_to_cell, parse_row_number
from xlbook.xml.sharedstrings import SharedStrings, rich_text
from xlbook.xml.tree import XML_HEADER, Element, PartTree, escape_attr, local_name, prefix_of

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

# CT_Worksheet child order.
WORKSHEET_ORDER = (
    "sheetPr", "dimension", "sheetViews", "sheetFormatPr", "cols", "sheetData",
    "sheetCalcPr", "sheetProtection", "protectedRanges", "scenarios", "autoFilter",
    "sortState", "dataConsolidate", "customSheetViews", "mergeCells", "phoneticPr",
    "conditionalFormatting", "dataValidations", "hyperlinks", "printOptions",
    "pageMargins", "pageSetup", "headerFooter", "rowBreaks", "colBreaks",
    "customProperties", "cellWatches", "ignoredErrors", "smartTags", "drawing",
    "legacyDrawing", "legacyDrawingHF", "drawingHF", "picture", "oleObjects",
    "controls", "webPublishItems", "tableParts", "extLst",
)

SECTIONS = (
    "sheetPr", "sheetViews", "autoFilter", "printOptions", "pageMargins",
    "pageSetup", "headerFooter", "rowBreaks", "colBreaks",
)


def _number(value: int | float) -> str:
    text = repr(value)
    return text[:-2] if text.endswith(".0") else text


# ---------------------------------------------------------------------------
# sheetData
# ---------------------------------------------------------------------------
class Cell:
    """One ``<c>`` element: ordered attributes and its child elements."""

    __slots__ = ("tag", "attrs", "children")

    def __init__(self, tag: str, attrs: dict[str, str] | None = None, children: list[Element] | None = None) -> None:
        self.tag = tag
        self.attrs = attrs if attrs is not None else {}
        self.children = children if children is not None else []

    @classmethod
    def from_element(cls, element: Element) -> "Cell":
        return cls(element.tag, dict(element.attrs), list(element.elements()))

    @property
    def ref(self) -> str | None:
        return self.attrs.get("r")

    def child(self, local: str) -> Element | None:
        for child in self.children:
            if child.local == local:
                return child
        return None

    def text(self, shared: SharedStrings | None = None) -> str:
        """Textual value of the cell (shared strings resolved, booleans as TRUE/FALSE)."""
        kind = self.attrs.get("t", "n")
        if kind == "inlineStr":
            inline = self.child("is")
            return rich_text(inline) if inline is not None else ""
        v = self.child("v")
        raw = v.text if v is not None else ""
        if kind == "s":
            if shared is None or not raw.strip().isdigit():
                return raw
            return shared.get(int(raw))
        if kind == "b":
            return "TRUE" if raw.strip() == "1" else "FALSE"
        return raw

    def set_value(self, value: Any) -> None:
        prefix = prefix_of(self.tag)
        keep = [c for c in self.children if c.local == "extLst"]
        if value is None:
            self.attrs.pop("t", None)
            self.children = keep
            return
        if isinstance(value, bool):
            self.attrs["t"] = "b"
            body = [Element(prefix + "v", children=["1" if value else "0"])]
        elif isinstance(value, (int, float)):
            self.attrs.pop("t", None)
            body = [Element(prefix + "v", children=[_number(value)])]
        elif isinstance(value, str):
            self.attrs["t"] = "inlineStr"
            t = Element(prefix + "t", children=[value] if value else [])
            if value != value.strip():
                t.set("xml:space", "preserve")
            body = [Element(prefix + "is", children=[t])]
        else:
            raise TypeError(f"unsupported cell value type: {type(value).__name__}")
        self.children = body + keep

    def write(self, out: list[str]) -> None:
        out.append("<" + self.tag)
        for key, value in self.attrs.items():
            out.append(f' {key}="{escape_attr(value)}"')
        if not self.children:
            out.append("/>")
            return
        out.append(">")
        for child in self.children:
            child.write(out)
        out.append(f"</{self.tag}>")


class Row:
    """One ``<row>`` element. ``cells`` keeps document order."""

    __slots__ = ("tag", "attrs", "cells", "extra")

    def __init__(self, tag: str, attrs: dict[str, str] | None = None) -> None:
        self.tag = tag
        self.attrs = attrs if attrs is not None else {}
        self.cells: list[Cell] = []
        self.extra: list[Element] = []

    @classmethod
    def from_element(cls, element: Element) -> "Row":
        row = cls(element.tag, dict(element.attrs))
        for child in element.elements():
            if child.local == "c":
                row.cells.append(Cell.from_element(child))
            else:
                row.extra.append(child)
        return row

    @property
    def number(self) -> int | None:
        """Row number from ``r``; ``None`` when the attribute is absent."""
        r = self.attrs.get("r")
        return None if r is None else parse_row_number(r)

    def iter_cells(self) -> Iterator[tuple[int, Cell]]:
        """Yield ``(column, cell)``; cells without ``r`` follow their predecessor."""
        col = 0
        for cell in self.cells:
            ref = cell.ref
            col = col + 1 if ref is None else cell_to_coordinates(ref)[0]
            yield col, cell

    def cell(self, col: int, row_number: int, create: bool = False) -> Cell | None:
        pos = len(self.cells)
        for i, (c, cell) in enumerate(self.iter_cells()):
            if c == col:
                return cell
            if c > col:
                pos = i
                break
        if not create:
            return None
        cell = Cell(prefix_of(self.tag) + "c", {"r": coordinates_to_cell(col, row_number)})
        self.cells.insert(pos, cell)
        return cell

    def write(self, out: list[str]) -> None:
        out.append("<" + self.tag)
        for key, value in self.attrs.items():
            out.append(f' {key}="{escape_attr(value)}"')
        if not self.cells and not self.extra:
            out.append("/>")
            return
        out.append(">")
        for cell in self.cells:
            cell.write(out)
        for extra in self.extra:
            extra.write(out)
        out.append(f"</{self.tag}>")


class SheetData:
    """The ``<sheetData>`` section: a sparse, ordered row collection."""

    __slots__ = ("tag", "attrs", "rows")

    def __init__(self, tag: str = "sheetData", attrs: dict[str, str] | None = None) -> None:
        self.tag = tag
        self.attrs = attrs if attrs is not None else {}
        self.rows: list[Row] = []

    @classmethod
    def from_element(cls, element: Element) -> "SheetData":
        data = cls(element.tag, dict(element.attrs))
        data.rows = [Row.from_element(child) for child in element.findall("row")]
        return data

    def iter_rows(self) -> Iterator[tuple[int, Row]]:
        """Yield ``(row_number, row)``; rows without ``r`` follow their predecessor."""
        number = 0
        for row in self.rows:
            explicit = row.number
            number = number + 1 if explicit is None else explicit
            yield number, row

    def row(self, number: int, create: bool = False) -> Row | None:
        if self.rows and create:
            last = self.rows[-1].attrs.get("r")
            if last is not None and last.isascii() and last.isdigit() and int(last) < number:
                return self._append_row(number, len(self.rows))
        pos = len(self.rows)
        for i, (n, row) in enumerate(self.iter_rows()):
            if n == number:
                return row
            if n > number:
                pos = i
                break
        if not create:
            return None
        return self._append_row(number, pos)

    def _append_row(self, number: int, pos: int) -> Row:
        row = Row(prefix_of(self.tag) + "row", {"r": str(number)})
        self.rows.insert(pos, row)
        return row

    def cell(self, col: int, row: int, create: bool = False) -> Cell | None:
        found = self.row(row, create=create)
        if found is None:
            return None
        return found.cell(col, row, create=create)

    def is_sorted(self) -> bool:
        numbers = [r.attrs.get("r") for r in self.rows]
        if not all(n is not None and n.isdigit() for n in numbers):
            return True
        values = [int(n) for n in numbers]
        return values == sorted(values)

    def sort(self) -> None:
        self.rows.sort(key=lambda r: int(r.attrs["r"]))

    def to_bytes(self, encoding: str = "utf-8") -> bytes:
        out = ["<" + self.tag]
        for key, value in self.attrs.items():
            out.append(f' {key}="{escape_attr(value)}"')
        if not self.rows:
            out.append("/>")
        else:
            out.append(">")
            for row in self.rows:
                row.write(out)
            out.append(f"</{self.tag}>")
        return "".join(out).encode(encoding, "xmlcharrefreplace")


# ---------------------------------------------------------------------------
# Worksheet part
# ---------------------------------------------------------------------------
def _identity(element: Element) -> Element:
    return element


_FACTORIES = {name: _identity for name in SECTIONS}
_FACTORIES["sheetData"] = SheetData.from_element


class WorksheetPart:
    """A materialized worksheet: editable sections over a byte-faithful part tree."""

    def __init__(self, tree: PartTree) -> None:
        self.tree = tree

    @classmethod
    def parse(cls, data: bytes) -> "WorksheetPart":
        return cls(PartTree.parse(data, _FACTORIES))

    @classmethod
    def new(cls, selected: bool = False) -> "WorksheetPart":
        view = '<sheetView tabSelected="1" workbookViewId="0"/>' if selected else '<sheetView workbookViewId="0"/>'
        data = (
            XML_HEADER
            + f'<worksheet xmlns="{MAIN_NS}" xmlns:r="{REL_NS}">'
            f'<dimension ref="A1"/><sheetViews>{view}</sheetViews>'
            '<sheetFormatPr defaultRowHeight="15"/><sheetData/>'
            '<pageMargins left="0.7" right="0.7" top="0.75" bottom="0.75" header="0.3" footer="0.3"/>'
            "</worksheet>".encode()
        )
        return cls.parse(data)

    def to_bytes(self) -> bytes:
        return self.tree.to_bytes()

    # -- sections ------------------------------------------------------------
    def section(self, local: str) -> Element | None:
        """Return a modeled section for reading, or ``None`` when absent."""
        node = self.tree.node(local)
        return None if node is None else node.value

    def edit(self, local: str) -> Element:
        """Return a modeled section for writing, creating it in schema order."""
        node = self.tree.node(local)
        if node is None:
            node = self.tree.insert(local, Element(self.tree.prefix + local), WORKSHEET_ORDER)
        node.dirty = True
        return node.value

    def drop(self, local: str) -> None:
        for node in self.tree.nodes(local):
            self.tree.remove(node)

    @property
    def sheet_data(self) -> SheetData:
        node = self.tree.node("sheetData")
        return SheetData(self.tree.prefix + "sheetData") if node is None else node.value

    def edit_sheet_data(self) -> SheetData:
        node = self.tree.node("sheetData")
        if node is None:
            node = self.tree.insert("sheetData", SheetData(self.tree.prefix + "sheetData"), WORKSHEET_ORDER)
        node.dirty = True
        return node.value

    # -- views ---------------------------------------------------------------
    def sheet_view(self, create: bool = False) -> Element | None:
        """The last ``<sheetView>``; created (with its container) when *create*."""
        views = self.section("sheetViews") if not create else self.edit("sheetViews")
        if views is None:
            return None
        found = views.findall("sheetView")
        if found:
            return found[-1]
        if not create:
            return None
        return views.sub("sheetView", {"workbookViewId": "0"})

    def is_selected(self) -> bool:
        views = self.section("sheetViews")
        if views is None:
            return False
        return any(v.get("tabSelected") in ("1", "true") for v in views.findall("sheetView"))

    def set_selected(self, selected: bool) -> None:
        if not selected:
            views = self.section("sheetViews")
            if views is None or not self.is_selected():
                return
            views = self.edit("sheetViews")
            for view in views.findall("sheetView"):
                view.set("tabSelected", None)
            return
        view = self.sheet_view(create=True)
        view.set("tabSelected", "1")

    # -- consistency ---------------------------------------------------------
    def check(self) -> None:
        """Normalize a tree whose materialized flag was reset: rows in ascending order."""
        node = self.tree.node("sheetData")
        if node is not None and not node.value.is_sorted():
            node.value.sort()
            node.dirty = True


def insert_ordered(parent: Element, child: Element, order: tuple[str, ...]) -> Element:
    """Insert *child* into *parent* respecting the schema *order* of local names."""
    rank = order.index(child.local)
    pos = len(parent.children)
    for i, existing in enumerate(parent.children):
        if isinstance(existing, Element) and existing.local in order and order.index(existing.local) > rank:
            pos = i
            break
    parent.children.insert(pos, child)
    return child


__all__ = [
    "Cell",
    "Row",
    "SheetData",
    "WorksheetPart",
    "WORKSHEET_ORDER",
    "insert_ordered",
    "local_name",
]
