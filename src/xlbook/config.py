"""Engine configuration loaded from ``xlbook.yaml``."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from xlbook.contracts.errors import ConfigParseError, InvalidSheetNameError
from xlbook.io.fileops import read_text_safe

CONFIG_FILENAME = "xlbook.yaml"


class EngineConfig(BaseModel):
    """Defaults applied by ``Workbook.new`` and the CLI."""

    default_sheet_name: str = "Sheet1"
    emit_events: bool = False
    lock_timeout: float = Field(default=0, ge=0)
    backup: bool = False

    @field_validator("default_sheet_name")
    @classmethod
    def _valid_sheet_name(cls, value: str) -> str:
        from xlbook.engine.context import check_sheet_name

        try:
            check_sheet_name(value)
        except InvalidSheetNameError as e:
            raise ValueError(str(e)) from e
        return value

    @classmethod
    def load(cls, path: str | Path) -> "EngineConfig":
        """Load from a YAML file. An empty file gives the defaults."""
        try:
            data = yaml.safe_load(read_text_safe(path)) or {}
        except yaml.YAMLError as e:
            raise ConfigParseError(f"cannot parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigParseError(f"{path} must contain a mapping")
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigParseError(f"invalid configuration in {path}: {e}") from e

    @classmethod
    def load_from_dir(cls, directory: str | Path) -> "EngineConfig | None":
        """Load ``xlbook.yaml`` from *directory*; ``None`` when there is none."""
        path = Path(directory) / CONFIG_FILENAME
        if path.exists():
            return cls.load(path)
        return None
