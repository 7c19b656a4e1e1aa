"""Option models accepted by the page layout, view and defined-name APIs."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class PageLayoutOptions(BaseModel):
    """Worksheet ``pageSetup`` settings. ``None`` leaves a setting untouched."""

    size: int | None = Field(default=None, ge=1, le=118)
    orientation: Literal["portrait", "landscape"] | None = None
    first_page_number: int | None = Field(default=None, ge=0)
    adjust_to: int | None = Field(default=None, ge=10, le=400)
    fit_to_height: int | None = Field(default=None, ge=0)
    fit_to_width: int | None = Field(default=None, ge=0)
    black_and_white: bool | None = None


class PageMarginsOptions(BaseModel):
    """Worksheet ``pageMargins`` (inches) plus ``printOptions`` centering."""

    left: float | None = Field(default=None, ge=0)
    right: float | None = Field(default=None, ge=0)
    top: float | None = Field(default=None, ge=0)
    bottom: float | None = Field(default=None, ge=0)
    header: float | None = Field(default=None, ge=0)
    footer: float | None = Field(default=None, ge=0)
    horizontally: bool | None = None
    vertically: bool | None = None


class HeaderFooterOptions(BaseModel):
    """Six header/footer text slots and the flags that select between them."""

    align_with_margins: bool | None = None
    different_first: bool = False
    different_odd_even: bool = False
    scale_with_doc: bool | None = None
    odd_header: str = ""
    odd_footer: str = ""
    even_header: str = ""
    even_footer: str = ""
    first_header: str = ""
    first_footer: str = ""


class Selection(BaseModel):
    """Selection state of one pane."""

    sqref: str = ""
    active_cell: str = ""
    pane: str = ""


class PaneOptions(BaseModel):
    """Freeze/split pane configuration of a sheet's view."""

    freeze: bool = False
    split: bool = False
    x_split: float = 0
    y_split: float = 0
    top_left_cell: str = ""
    active_pane: str = ""
    panes: list[Selection] = Field(default_factory=list)


class DefinedName(BaseModel):
    """A workbook defined name. ``scope`` is a sheet name, or ``None`` for workbook scope."""

    name: str = Field(min_length=1)
    refers_to: str = ""
    scope: str | None = None
    comment: str = ""
    hidden: bool = False
