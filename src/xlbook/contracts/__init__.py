"""Pydantic models and typed errors shared by the engine and the CLI."""

from xlbook.contracts.common import (
    ChangeRecord,
    ErrorDetail,
    Metrics,
    ResponseEnvelope,
    Target,
    WarningDetail,
)
from xlbook.contracts.errors import (
    ConfigParseError,
    DefinedNameScopeNotFoundError,
    DuplicateDefinedNameError,
    FieldTooLongError,
    InvalidReferenceError,
    InvalidSheetNameError,
    LastSheetError,
    MalformedPartError,
    NoActiveSheetInGroupError,
    SheetNotFoundError,
    XlBookError,
)
from xlbook.contracts.options import (
    DefinedName,
    HeaderFooterOptions,
    PageLayoutOptions,
    PageMarginsOptions,
    PaneOptions,
    Selection,
)
from xlbook.contracts.responses import (
    SheetMeta,
    WorkbookMeta,
)

__all__ = [
    "ChangeRecord",
    "ConfigParseError",
    "DefinedName",
    "DefinedNameScopeNotFoundError",
    "DuplicateDefinedNameError",
    "ErrorDetail",
    "FieldTooLongError",
    "HeaderFooterOptions",
    "InvalidReferenceError",
    "InvalidSheetNameError",
    "LastSheetError",
    "MalformedPartError",
    "Metrics",
    "NoActiveSheetInGroupError",
    "PageLayoutOptions",
    "PageMarginsOptions",
    "PaneOptions",
    "ResponseEnvelope",
    "Selection",
    "SheetMeta",
    "SheetNotFoundError",
    "Target",
    "WarningDetail",
    "WorkbookMeta",
    "XlBookError",
]
