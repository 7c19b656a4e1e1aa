"""Envelope models shared by every CLI command."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Target(BaseModel):
    """What a command addressed: workbook file, sheet, defined name, cell reference."""

    file: str | None = None
    sheet: str | None = None
    name: str | None = None
    ref: str | None = None


class WarningDetail(BaseModel):
    code: str
    message: str
    part: str | None = None  # package part the warning is about, e.g. xl/vbaProject.bin


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class Metrics(BaseModel):
    """``parts_written`` counts the parts re-serialized on save; every other part is copied as read."""

    duration_ms: int = 0
    parts_written: int = 0


class ChangeRecord(BaseModel):
    """One structural edit: ``type`` is ``<area>.<action>`` (``sheet.rename``, ``name.set``...)."""

    type: str
    target: str
    before: Any | None = None
    after: Any | None = None


class ResponseEnvelope(BaseModel):
    """The JSON document every command prints."""

    ok: bool = True
    command: str = ""
    target: Target = Field(default_factory=Target)
    result: Any = None
    changes: list[ChangeRecord] = Field(default_factory=list)
    warnings: list[WarningDetail] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
