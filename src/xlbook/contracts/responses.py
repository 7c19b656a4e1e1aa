"""Result models of the inspection commands."""

from __future__ import annotations

from pydantic import BaseModel, Field

from xlbook.contracts.common import WarningDetail
from xlbook.contracts.options import DefinedName


class SheetMeta(BaseModel):
    """One ``<sheet>`` entry of the workbook part, resolved to its worksheet part."""

    name: str
    index: int
    sheet_id: int
    part: str
    visible: str = "visible"  # visible / hidden / veryHidden
    active: bool = False
    selected: bool = False


class WorkbookMeta(BaseModel):
    path: str | None = None
    fingerprint: str | None = None
    sheets: list[SheetMeta] = Field(default_factory=list)
    names: list[DefinedName] = Field(default_factory=list)
    active_sheet: int = 0
    parts: list[str] = Field(default_factory=list)
    has_macros: bool = False
    warnings: list[WarningDetail] = Field(default_factory=list)
