"""xlbook: structural editing of SpreadsheetML workbooks with byte-faithful round-trips."""

from __future__ import annotations

from pathlib import Path

__version__ = "0.1.0"

from xlbook.contracts.errors import (  # noqa: E402
    ConfigParseError,
    DefinedNameScopeNotFoundError,
    DuplicateDefinedNameError,
    FieldTooLongError,
    InvalidReferenceError,
    InvalidSheetNameError,
    LastSheetError,
    MalformedPartError,
    MissingPartError,
    NoActiveSheetInGroupError,
    SheetNotFoundError,
    XlBookError,
)
from xlbook.contracts.options import (  # noqa: E402
    DefinedName,
    HeaderFooterOptions,
    PageLayoutOptions,
    PageMarginsOptions,
    PaneOptions,
    Selection,
)
from xlbook.engine.context import Workbook  # noqa: E402


def new_file(**kwargs) -> Workbook:
    """A new one-sheet workbook held in memory."""
    return Workbook.new(**kwargs)


def open_file(path: str | Path, **kwargs) -> Workbook:
    """Open an existing ``.xlsx``/``.xlsm`` package."""
    return Workbook.open(path, **kwargs)


__all__ = [
    "ConfigParseError",
    "DefinedName",
    "DefinedNameScopeNotFoundError",
    "DuplicateDefinedNameError",
    "FieldTooLongError",
    "HeaderFooterOptions",
    "InvalidReferenceError",
    "InvalidSheetNameError",
    "LastSheetError",
    "MalformedPartError",
    "MissingPartError",
    "NoActiveSheetInGroupError",
    "PageLayoutOptions",
    "PageMarginsOptions",
    "PaneOptions",
    "Selection",
    "SheetNotFoundError",
    "Workbook",
    "XlBookError",
    "__version__",
    "new_file",
    "open_file",
]
