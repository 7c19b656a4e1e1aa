"""Freeze/split panes and per-pane selections of a worksheet view."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from xlbook.contracts.errors import ConfigParseError, InvalidReferenceError
from xlbook.contracts.options import PaneOptions, Selection
from xlbook.engine.coords import cell_to_coordinates, split_sqref
from xlbook.xml.tree import Element, attr_float

if TYPE_CHECKING:
    from xlbook.engine.context import Workbook

PANE_NAMES = ("bottomRight", "topRight", "bottomLeft", "topLeft")


def parse_pane_options(config: str | bytes | dict[str, Any] | PaneOptions) -> PaneOptions:
    """Accept a JSON document, a mapping or a ready ``PaneOptions``; validate references."""
    if isinstance(config, PaneOptions):
        options = config
    else:
        try:
            if isinstance(config, (str, bytes)):
                options = PaneOptions.model_validate_json(config)
            else:
                options = PaneOptions.model_validate(config)
        except ValidationError as e:
            raise ConfigParseError(f"invalid pane configuration: {e.errors()[0]['msg']}") from e

    for name in [options.active_pane] + [p.pane for p in options.panes]:
        if name and name not in PANE_NAMES:
            raise ConfigParseError(f"invalid pane configuration: unknown pane {name!r}")
    try:
        if options.top_left_cell:
            cell_to_coordinates(options.top_left_cell)
        for selection in options.panes:
            if selection.active_cell:
                cell_to_coordinates(selection.active_cell)
            if selection.sqref:
                split_sqref(selection.sqref)
    except InvalidReferenceError as e:
        raise ConfigParseError(f"invalid pane configuration: {e}") from e
    return options


def _number(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


def set_panes(book: "Workbook", sheet: str, config: str | bytes | dict[str, Any] | PaneOptions) -> None:
    """Replace the pane and selections of the sheet's last view.

    The sheet is resolved before *config* is parsed. A configuration that is
    neither frozen nor split removes the pane.
    """
    with book.worksheet(sheet) as ws:
        options = parse_pane_options(config)
        view = ws.sheet_view(create=True)

        rest = [c for c in view.elements() if c.local not in ("pane", "selection")]
        children: list[Element] = []
        if options.freeze or options.split:
            pane = view.make("pane")
            if options.x_split:
                pane.set("xSplit", _number(options.x_split))
            if options.y_split:
                pane.set("ySplit", _number(options.y_split))
            if options.top_left_cell:
                pane.set("topLeftCell", options.top_left_cell)
            if options.active_pane:
                pane.set("activePane", options.active_pane)
            pane.set("state", "split" if options.split else "frozen")
            children.append(pane)
        for selection in options.panes:
            children.append(view.make("selection", {
                "pane": selection.pane or None,
                "activeCell": selection.active_cell or None,
                "sqref": selection.sqref or None,
            }))
        view.children = children + rest


def get_panes(book: "Workbook", sheet: str) -> PaneOptions:
    with book.worksheet(sheet) as ws:
        view = ws.sheet_view()
        if view is None:
            return PaneOptions()
        pane = view.find("pane")
        state = pane.get("state", "split") if pane is not None else ""
        return PaneOptions(
            freeze=state in ("frozen", "frozenSplit"),
            split=state == "split",
            x_split=attr_float(pane, "xSplit"),
            y_split=attr_float(pane, "ySplit"),
            top_left_cell=pane.get("topLeftCell", "") if pane is not None else "",
            active_pane=pane.get("activePane", "") if pane is not None else "",
            panes=[
                Selection(
                    sqref=s.get("sqref", ""),
                    active_cell=s.get("activeCell", ""),
                    pane=s.get("pane", ""),
                )
                for s in view.findall("selection")
            ],
        )
