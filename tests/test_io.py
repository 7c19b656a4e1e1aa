"""Tests for IO operations: zip container, fingerprint, backup, atomic write."""

import io
import re
import shutil
import zipfile
from pathlib import Path

import pytest

from xlbook.contracts.errors import MalformedPartError
from xlbook.engine.context import Workbook
from xlbook.io.container import read_package, write_package
from xlbook.io.fileops import atomic_write, backup, fingerprint, read_text_safe


def test_fingerprint(two_sheet_workbook: Path):
    fp = fingerprint(two_sheet_workbook)
    assert fp.startswith("sha256:")
    assert len(fp) == 71  # sha256: + 64 hex chars
    assert fingerprint(two_sheet_workbook) == fp


def test_fingerprint_changes_with_content(tmp_path: Path):
    target = tmp_path / "a.bin"
    target.write_bytes(b"one")
    first = fingerprint(target)
    target.write_bytes(b"two")
    assert fingerprint(target) != first


def test_backup(two_sheet_workbook: Path):
    bak_path = Path(backup(two_sheet_workbook))
    assert re.fullmatch(r"Book1\.\d{8}T\d{6}Z\.bak\.xlsx", bak_path.name)
    assert bak_path.parent == two_sheet_workbook.parent
    assert bak_path.read_bytes() == two_sheet_workbook.read_bytes()


def test_atomic_write(tmp_path: Path):
    target = tmp_path / "output.xlsx"
    atomic_write(target, b"test data content")
    assert target.read_bytes() == b"test data content"
    assert [p.name for p in tmp_path.iterdir()] == ["output.xlsx"]


def test_atomic_write_overwrites(tmp_path: Path):
    target = tmp_path / "output.xlsx"
    target.write_bytes(b"old content")
    atomic_write(target, b"new content")
    assert target.read_bytes() == b"new content"


def test_atomic_write_failure_keeps_original(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    target = tmp_path / "output.xlsx"
    target.write_bytes(b"old content")

    def broken_move(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(shutil, "move", broken_move)
    with pytest.raises(OSError, match="disk full"):
        atomic_write(target, b"new content")
    assert target.read_bytes() == b"old content"
    assert [p.name for p in tmp_path.iterdir()] == ["output.xlsx"]


def test_read_text_safe_drops_bom(tmp_path: Path):
    target = tmp_path / "config.yaml"
    target.write_bytes(b"\xef\xbb\xbfkey: value\n")
    assert read_text_safe(target) == "key: value\n"


# ---------------------------------------------------------------------------
# Zip container
# ---------------------------------------------------------------------------


def test_read_package(two_sheet_workbook: Path):
    parts = read_package(two_sheet_workbook)
    assert "[Content_Types].xml" in parts
    assert "xl/workbook.xml" in parts
    assert all(not name.endswith("/") for name in parts)
    assert read_package(two_sheet_workbook.read_bytes()) == parts


def test_read_package_skips_directories(tmp_path: Path):
    target = tmp_path / "dirs.zip"
    with zipfile.ZipFile(target, "w") as zf:
        zf.writestr("xl/", b"")
        zf.writestr("xl/workbook.xml", b"<workbook/>")
    assert read_package(target) == {"xl/workbook.xml": b"<workbook/>"}


def test_write_package_puts_content_types_first():
    data = write_package({"xl/workbook.xml": b"<w/>", "[Content_Types].xml": b"<Types/>", "_rels/.rels": b"<r/>"})
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == ["[Content_Types].xml", "_rels/.rels", "xl/workbook.xml"]
        assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())


def test_not_a_zip(tmp_path: Path):
    target = tmp_path / "broken.xlsx"
    target.write_bytes(b"plain text, not a package")
    with pytest.raises(MalformedPartError) as exc:
        Workbook.open(target)
    assert exc.value.code == "ERR_WORKBOOK_CORRUPT"
    with pytest.raises(MalformedPartError, match="<bytes>"):
        read_package(b"nope")
