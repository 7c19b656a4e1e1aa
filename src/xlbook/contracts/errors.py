"""Typed errors raised by the document engine.

Every error carries a machine-readable ``code`` that the CLI copies into the
``ErrorDetail`` of its response envelope.
"""

from __future__ import annotations


class XlBookError(Exception):
    """Base class for all engine errors."""

    code = "ERR_INTERNAL"


class SheetNotFoundError(XlBookError):
    """Raised when an operation names a sheet that does not exist."""

    code = "ERR_SHEET_NOT_FOUND"

    def __init__(self, sheet: str) -> None:
        super().__init__(f"sheet {sheet} does not exist")
        self.sheet = sheet


class InvalidSheetNameError(XlBookError):
    """Raised for empty, too long, or illegal sheet names."""

    code = "ERR_SHEET_NAME_INVALID"

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"invalid sheet name {name!r}: {reason}")
        self.name = name
        self.reason = reason


class LastSheetError(XlBookError):
    """Raised when deleting the only remaining sheet."""

    code = "ERR_LAST_SHEET"

    def __init__(self, sheet: str) -> None:
        super().__init__(f"cannot delete {sheet}: a workbook must contain at least one sheet")
        self.sheet = sheet


class InvalidReferenceError(XlBookError, ValueError):
    """Raised for malformed or out-of-range cell and range references."""

    code = "ERR_RANGE_INVALID"

    def __init__(self, ref: str, reason: str = "invalid cell name", *, message: str | None = None) -> None:
        super().__init__(message or f"cannot convert cell {ref!r} to coordinates: {reason}")
        self.ref = ref
        self.reason = reason

    @classmethod
    def for_coordinates(cls, col: int, row: int) -> "InvalidReferenceError":
        text = f"[{col}, {row}]"
        return cls(text, "out of range", message=f"invalid cell reference {text}")


class MalformedPartError(XlBookError):
    """Raised when a stored part cannot be parsed."""

    code = "ERR_WORKBOOK_CORRUPT"

    def __init__(self, path: str, cause: Exception) -> None:
        super().__init__(f"cannot parse part {path}: {cause}")
        self.path = path
        self.cause = cause


class MissingPartError(MalformedPartError):
    """Raised when the package references a part it does not contain."""

    def __init__(self, path: str) -> None:
        XlBookError.__init__(self, f"part {path} is missing from the package")
        self.path = path
        self.cause = None


class FieldTooLongError(XlBookError, ValueError):
    """Raised when a header/footer field exceeds the maximum length."""

    code = "ERR_FIELD_TOO_LONG"

    def __init__(self, field: str, limit: int) -> None:
        super().__init__(f"field {field} must be less than or equal to {limit} characters")
        self.field = field
        self.limit = limit


class DuplicateDefinedNameError(XlBookError):
    """Raised when a defined name already exists on the same scope."""

    code = "ERR_NAME_DUPLICATE"

    def __init__(self, name: str, scope: str) -> None:
        super().__init__(f"the same name {name!r} already exists on the scope {scope}")
        self.name = name
        self.scope = scope


class DefinedNameScopeNotFoundError(XlBookError):
    """Raised when deleting a defined name that has no entry on the scope."""

    code = "ERR_NAME_NOT_FOUND"

    def __init__(self, name: str, scope: str) -> None:
        super().__init__(f"no defined name {name!r} on the scope {scope}")
        self.name = name
        self.scope = scope


class NoActiveSheetInGroupError(XlBookError):
    """Raised when a sheet group does not contain the active sheet."""

    code = "ERR_GROUP_INVALID"

    def __init__(self) -> None:
        super().__init__("group worksheet must contain an active worksheet")


class ConfigParseError(XlBookError, ValueError):
    """Raised for malformed pane configuration payloads."""

    code = "ERR_CONFIG_INVALID"
