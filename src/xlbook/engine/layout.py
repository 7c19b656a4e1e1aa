"""Print layout of a worksheet: page setup, margins, header/footer, page breaks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from xlbook.contracts.errors import FieldTooLongError
from xlbook.contracts.options import HeaderFooterOptions, PageLayoutOptions, PageMarginsOptions
from xlbook.engine.coords import MAX_COLUMNS, MAX_ROWS, cell_to_coordinates, parse_index
from xlbook.xml.tree import Element, attr_bool, attr_float
from xlbook.xml.worksheet import WorksheetPart, insert_ordered

if TYPE_CHECKING:
    from xlbook.engine.context import Workbook

MAX_FIELD_LENGTH = 255

SHEET_PR_ORDER = ("tabColor", "outlinePr", "pageSetUpPr")
HEADER_FOOTER_FIELDS = (
    ("odd_header", "oddHeader"),
    ("odd_footer", "oddFooter"),
    ("even_header", "evenHeader"),
    ("even_footer", "evenFooter"),
    ("first_header", "firstHeader"),
    ("first_footer", "firstFooter"),
)
DEFAULT_MARGINS = {"left": 0.7, "right": 0.7, "top": 0.75, "bottom": 0.75, "header": 0.3, "footer": 0.3}


def _int_attr(element: Element | None, name: str, default: int) -> int:
    return int(attr_float(element, name, default))


# ---------------------------------------------------------------------------
# Page setup
# ---------------------------------------------------------------------------
def set_page_layout(book: "Workbook", sheet: str, options: PageLayoutOptions | None = None) -> None:
    """Apply the non-``None`` fields of *options* to the sheet's ``<pageSetup>``."""
    with book.worksheet(sheet) as ws:
        if options is None:
            return
        fields = options.model_dump(exclude_none=True)
        if not fields:
            return
        setup = ws.edit("pageSetup")
        if "size" in fields:
            setup.set("paperSize", options.size)
        if "orientation" in fields:
            setup.set("orientation", options.orientation)
        if "first_page_number" in fields:
            setup.set("firstPageNumber", options.first_page_number)
            setup.set("useFirstPageNumber", True)
        if "adjust_to" in fields:
            setup.set("scale", options.adjust_to)
        if "fit_to_height" in fields:
            setup.set("fitToHeight", options.fit_to_height)
        if "fit_to_width" in fields:
            setup.set("fitToWidth", options.fit_to_width)
        if "black_and_white" in fields:
            setup.set("blackAndWhite", options.black_and_white)
        if "fit_to_height" in fields or "fit_to_width" in fields:
            _set_fit_to_page(ws)


def _set_fit_to_page(ws: WorksheetPart) -> None:
    sheet_pr = ws.edit("sheetPr")
    pr = sheet_pr.find("pageSetUpPr")
    if pr is None:
        pr = insert_ordered(sheet_pr, sheet_pr.make("pageSetUpPr"), SHEET_PR_ORDER)
    pr.set("fitToPage", True)


def get_page_layout(book: "Workbook", sheet: str) -> PageLayoutOptions:
    """Current page setup with the format's defaults filled in."""
    with book.worksheet(sheet) as ws:
        setup = ws.section("pageSetup")
        return PageLayoutOptions(
            size=_int_attr(setup, "paperSize", 1),
            orientation=(setup.get("orientation") if setup is not None else None) or "portrait",
            first_page_number=_int_attr(setup, "firstPageNumber", 1),
            adjust_to=_int_attr(setup, "scale", 100),
            fit_to_height=_int_attr(setup, "fitToHeight", 1),
            fit_to_width=_int_attr(setup, "fitToWidth", 1),
            black_and_white=attr_bool(setup, "blackAndWhite"),
        )


# ---------------------------------------------------------------------------
# Margins
# ---------------------------------------------------------------------------
def set_page_margins(book: "Workbook", sheet: str, options: PageMarginsOptions | None = None) -> None:
    with book.worksheet(sheet) as ws:
        if options is None:
            return
        fields = options.model_dump(exclude_none=True)
        margins = {k: v for k, v in fields.items() if k in DEFAULT_MARGINS}
        if margins:
            existing = ws.section("pageMargins")
            element = ws.edit("pageMargins")
            if existing is None:
                for key, value in DEFAULT_MARGINS.items():
                    element.set(key, value)
            for key, value in margins.items():
                element.set(key, value)
        if "horizontally" in fields or "vertically" in fields:
            opts = ws.edit("printOptions")
            if "horizontally" in fields:
                opts.set("horizontalCentered", options.horizontally)
            if "vertically" in fields:
                opts.set("verticalCentered", options.vertically)


def get_page_margins(book: "Workbook", sheet: str) -> PageMarginsOptions:
    with book.worksheet(sheet) as ws:
        margins = ws.section("pageMargins")
        opts = ws.section("printOptions")
        values = {key: attr_float(margins, key, default) for key, default in DEFAULT_MARGINS.items()}
        return PageMarginsOptions(
            **values,
            horizontally=attr_bool(opts, "horizontalCentered"),
            vertically=attr_bool(opts, "verticalCentered"),
        )


# ---------------------------------------------------------------------------
# Header / footer
# ---------------------------------------------------------------------------
def set_header_footer(book: "Workbook", sheet: str, options: HeaderFooterOptions | None = None) -> None:
    """Replace the sheet's header/footer; ``None`` removes it.

    Every text slot is limited to ``MAX_FIELD_LENGTH`` characters.
    """
    with book.worksheet(sheet) as ws:
        if options is None:
            ws.drop("headerFooter")
            return
        for field, _ in HEADER_FOOTER_FIELDS:
            if len(getattr(options, field)) > MAX_FIELD_LENGTH:
                raise FieldTooLongError(field, MAX_FIELD_LENGTH)

        element = ws.edit("headerFooter")
        element.attrs = {}
        element.children = []
        if options.different_odd_even:
            element.set("differentOddEven", True)
        if options.different_first:
            element.set("differentFirst", True)
        element.set("scaleWithDoc", options.scale_with_doc)
        element.set("alignWithMargins", options.align_with_margins)
        for field, tag in HEADER_FOOTER_FIELDS:
            text = getattr(options, field)
            if text:
                element.sub(tag).text = text


def get_header_footer(book: "Workbook", sheet: str) -> HeaderFooterOptions:
    with book.worksheet(sheet) as ws:
        element = ws.section("headerFooter")
        if element is None:
            return HeaderFooterOptions()
        values: dict = {}
        for field, tag in HEADER_FOOTER_FIELDS:
            child = element.find(tag)
            values[field] = child.text if child is not None else ""
        for field, attr in (
            ("different_first", "differentFirst"),
            ("different_odd_even", "differentOddEven"),
            ("scale_with_doc", "scaleWithDoc"),
            ("align_with_margins", "alignWithMargins"),
        ):
            if element.get(attr) is not None:
                values[field] = attr_bool(element, attr)
        return HeaderFooterOptions(**values)


# ---------------------------------------------------------------------------
# Page breaks
# ---------------------------------------------------------------------------
def _break_ids(section: Element | None) -> list[int]:
    if section is None:
        return []
    return [
        parse_index(brk.get("id"), "page break id") for brk in section.findall("brk") if brk.get("id") is not None
    ]


def _write_breaks(ws: WorksheetPart, local: str, ids: list[int], max_value: int) -> None:
    """Rewrite one break list; keep existing entries' attributes, drop the section when empty."""
    if not ids:
        if ws.section(local) is not None:
            ws.drop(local)
        return
    existing = {}
    current = ws.section(local)
    if current is not None:
        for brk in current.findall("brk"):
            if brk.get("id") is not None:
                existing.setdefault(parse_index(brk.get("id"), "page break id"), brk)
    section = ws.edit(local)
    children: list[Element] = []
    for brk_id in sorted(set(ids)):
        brk = existing.get(brk_id)
        if brk is None:
            brk = section.make("brk", {"id": brk_id, "max": max_value, "man": True})
        children.append(brk)
    section.children = children
    section.set("count", len(children))
    section.set("manualBreakCount", sum(1 for brk in children if brk.get("man") in ("1", "true")))


def insert_page_break(book: "Workbook", sheet: str, cell: str) -> None:
    """Break before the row and the column of *cell*; ``A1`` inserts nothing."""
    with book.worksheet(sheet) as ws:
        col, row = cell_to_coordinates(cell)
        col -= 1
        row -= 1
        if col == 0 and row == 0:
            return
        if row:
            ids = _break_ids(ws.section("rowBreaks"))
            if row not in ids:
                _write_breaks(ws, "rowBreaks", ids + [row], MAX_COLUMNS - 1)
        if col:
            ids = _break_ids(ws.section("colBreaks"))
            if col not in ids:
                _write_breaks(ws, "colBreaks", ids + [col], MAX_ROWS - 1)


def remove_page_break(book: "Workbook", sheet: str, cell: str) -> None:
    """Remove the breaks ``insert_page_break`` would add for *cell*; absent breaks are ignored."""
    with book.worksheet(sheet) as ws:
        col, row = cell_to_coordinates(cell)
        col -= 1
        row -= 1
        if col == 0 and row == 0:
            return
        if row:
            ids = _break_ids(ws.section("rowBreaks"))
            if row in ids:
                _write_breaks(ws, "rowBreaks", [i for i in ids if i != row], MAX_COLUMNS - 1)
        if col:
            ids = _break_ids(ws.section("colBreaks"))
            if col in ids:
                _write_breaks(ws, "colBreaks", [i for i in ids if i != col], MAX_ROWS - 1)


def get_page_breaks(book: "Workbook", sheet: str) -> dict[str, list[int]]:
    """``{"rows": [...], "cols": [...]}``: indices after which a page break falls."""
    with book.worksheet(sheet) as ws:
        return {
            "rows": sorted(_break_ids(ws.section("rowBreaks"))),
            "cols": sorted(_break_ids(ws.section("colBreaks"))),
        }
