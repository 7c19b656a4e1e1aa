"""Zip container layer: read every part of a package, write a package back."""

from __future__ import annotations

import zipfile
from collections.abc import Mapping
from io import BytesIO
from pathlib import Path

from xlbook.contracts.errors import MalformedPartError
from xlbook.xml.package import CONTENT_TYPES_PATH


def read_package(source: str | Path | bytes) -> dict[str, bytes]:
    """Read all parts of an ``.xlsx`` into ``{path: bytes}``.

    Directory entries are skipped. A file that is not a zip archive raises
    ``MalformedPartError`` for the package itself.
    """
    stream = BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        with zipfile.ZipFile(stream) as zf:
            return {
                info.filename.lstrip("/"): zf.read(info)
                for info in zf.infolist()
                if not info.is_dir()
            }
    except zipfile.BadZipFile as e:
        raise MalformedPartError(str(source) if not isinstance(source, (bytes, bytearray)) else "<bytes>", e) from e


def write_package(parts: Mapping[str, bytes]) -> bytes:
    """Serialize parts into a deflated zip; ``[Content_Types].xml`` goes first."""
    ordered = sorted(parts, key=lambda p: (p != CONTENT_TYPES_PATH, p))
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in ordered:
            zf.writestr(path, parts[path])
    return buf.getvalue()
