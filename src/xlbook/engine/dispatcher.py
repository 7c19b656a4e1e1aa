"""Envelopes for CLI responses and the error-code to exit-code classes."""

from __future__ import annotations

import sys
from typing import Any

import orjson

from xlbook.contracts.common import ErrorDetail, Metrics, ResponseEnvelope, Target
from xlbook.contracts.errors import XlBookError

EXIT_CODES = {
    "success": 0,
    "validation": 10,
    "conflict": 40,
    "io": 50,
    "internal": 90,
}

# Checked in order; the first class with a marker inside the code wins.
EXIT_CLASS_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("conflict", ("FINGERPRINT", "CONFLICT")),
    (
        "validation",
        (
            "VALIDATION",
            "RANGE",
            "INVALID",
            "DUPLICATE",
            "FIELD_TOO_LONG",
            "LAST_SHEET",
            "SHEET_NOT_FOUND",
            "NAME_NOT_FOUND",
            "SHEET_EXISTS",
            "USAGE",
        ),
    ),
    ("io", ("ERR_IO", "FILE_EXISTS", "LOCK", "CORRUPT", "NOT_FOUND")),
)


def exit_class(code: str) -> str:
    """Name of the exit class (a key of ``EXIT_CODES``) for an error *code*."""
    code = code.upper()
    for name, markers in EXIT_CLASS_MARKERS:
        if any(marker in code for marker in markers):
            return name
    return "internal"


def exit_code_for(envelope: ResponseEnvelope) -> int:
    if envelope.ok:
        return EXIT_CODES["success"]
    if not envelope.errors:
        return EXIT_CODES["internal"]
    return EXIT_CODES[exit_class(envelope.errors[0].code)]


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


def success_envelope(
    command: str,
    result: Any,
    *,
    target: Target | None = None,
    changes: list | None = None,
    warnings: list | None = None,
    duration_ms: int = 0,
    parts_written: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=True,
        command=command,
        target=target or Target(),
        result=result,
        changes=changes or [],
        warnings=warnings or [],
        metrics=Metrics(duration_ms=duration_ms, parts_written=parts_written),
    )


def error_envelope(
    command: str,
    code: str,
    message: str,
    *,
    target: Target | None = None,
    details: dict | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=False,
        command=command,
        target=target or Target(),
        errors=[ErrorDetail(code=code, message=message, details=details)],
        metrics=Metrics(duration_ms=duration_ms),
    )


def _error_details(exc: XlBookError) -> dict[str, Any] | None:
    """Public scalar attributes of *exc* (sheet, name, field, path...)."""
    details = {
        key: value
        for key, value in vars(exc).items()
        if not key.startswith("_") and isinstance(value, (str, int))
    }
    return details or None


def envelope_for_error(command: str, exc: XlBookError, *, target: Target | None = None) -> ResponseEnvelope:
    return error_envelope(command, exc.code, str(exc), target=target, details=_error_details(exc))


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def output_json(envelope: ResponseEnvelope) -> str:
    return orjson.dumps(envelope.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode()


def print_response(envelope: ResponseEnvelope) -> None:
    sys.stdout.write(output_json(envelope) + "\n")
