"""Disk side of a workbook: package fingerprints, backups, atomic saves and the sidecar lock."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import IO

import portalocker

LOCK_SUFFIX = ".xlbook.lock"
_CHUNK = 1 << 16


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Fingerprints and backups
# ---------------------------------------------------------------------------


def fingerprint(source: str | Path | bytes) -> str:
    """``sha256:<hex>`` of a package file, or of package bytes held in memory."""
    digest = hashlib.sha256()
    if isinstance(source, bytes):
        digest.update(source)
    else:
        with open(source, "rb") as fh:
            while chunk := fh.read(_CHUNK):
                digest.update(chunk)
    return "sha256:" + digest.hexdigest()


def backup(path: str | Path) -> str:
    """Copy the workbook to ``<stem>.<YYYYmmddTHHMMSSZ>.bak<suffix>`` beside it."""
    src = Path(path)
    stamp = _utc_now().strftime("%Y%m%dT%H%M%SZ")
    dest = src.with_name(f"{src.stem}.{stamp}.bak{src.suffix}")
    shutil.copy2(src, dest)
    return str(dest)


def atomic_write(target: str | Path, data: bytes) -> None:
    """Replace *target* with *data* so readers see the old package or the new one, never a mix.

    The bytes go to a hidden temp file in the same directory and are moved
    over the target only after an fsync. Nothing is left behind on failure.
    """
    target = Path(target)
    with tempfile.NamedTemporaryFile(
        "wb", dir=target.parent, prefix=".xlbook_tmp_", suffix=target.suffix, delete=False
    ) as tmp:
        staged = Path(tmp.name)
        try:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            staged.unlink(missing_ok=True)
            raise
    try:
        shutil.move(str(staged), str(target))
    except BaseException:
        staged.unlink(missing_ok=True)
        raise


def read_text_safe(path: str | Path) -> str:
    """UTF-8 text of *path* without a leading BOM."""
    return Path(path).read_text(encoding="utf-8-sig")


# ---------------------------------------------------------------------------
# Sidecar lock
# ---------------------------------------------------------------------------


def lock_path_for(path: str | Path) -> Path:
    workbook = Path(path).resolve()
    return workbook.with_name(workbook.name + LOCK_SUFFIX)


def _lock_now(handle: IO[str]) -> None:
    portalocker.lock(handle, portalocker.LOCK_EX | portalocker.LOCK_NB)


def _lock_within(handle: IO[str], timeout: float) -> None:
    """Take the lock on *handle*, polling until *timeout* seconds have passed."""
    if timeout <= 0:
        _lock_now(handle)
        return
    deadline = time.monotonic() + timeout
    pause = min(0.1, max(0.01, timeout / 20))
    while True:
        try:
            _lock_now(handle)
            return
        except portalocker.LockException:
            if time.monotonic() >= deadline:
                raise
            time.sleep(pause)


def _read_holder(lock_path: Path) -> dict[str, str]:
    """``key=value`` lines a ``WorkbookLock`` wrote into its sidecar."""
    try:
        lines = lock_path.read_text().splitlines()
    except OSError:
        return {}
    return {
        key.strip(): value.strip()
        for key, sep, value in (line.partition("=") for line in lines)
        if sep
    }


class WorkbookLock:
    """Exclusive lock on ``<file>.xlbook.lock`` for one load-mutate-save cycle.

    The sidecar records ``pid`` and ``time`` of the holder. It is left on
    disk after release; the OS lock, not the file, is what excludes other
    writers, so a crashed holder never blocks the next one.
    """

    def __init__(self, workbook_path: str | Path, *, timeout: float = 0) -> None:
        self.workbook_path = Path(workbook_path).resolve()
        self.timeout = timeout
        self._handle: IO[str] | None = None

    @property
    def lock_path(self) -> Path:
        return lock_path_for(self.workbook_path)

    def __enter__(self) -> "WorkbookLock":
        handle = open(self.lock_path, "a+")  # noqa: SIM115
        try:
            _lock_within(handle, self.timeout)
        except portalocker.LockException:
            handle.close()
            raise
        handle.seek(0)
        handle.truncate()
        handle.write(f"pid={os.getpid()}\ntime={_utc_now().isoformat()}\n")
        handle.flush()
        self._handle = handle
        return self

    def __exit__(self, *exc: object) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            portalocker.unlock(handle)
        finally:
            handle.close()


def check_lock(path: str | Path) -> dict:
    """Report whether someone holds the workbook's lock, without taking it.

    Keys: ``exists`` (the workbook file is there), ``locked``, ``lock_file``
    and, while held, ``holder`` with the fields the holder recorded.
    """
    lock_path = lock_path_for(path)
    status: dict = {"exists": Path(path).resolve().exists(), "locked": False, "lock_file": str(lock_path)}
    if not lock_path.exists():
        return status
    try:
        with open(lock_path, "a+") as handle:
            _lock_now(handle)
            portalocker.unlock(handle)
    except portalocker.LockException:
        status["locked"] = True
        status["holder"] = _read_holder(lock_path)
    except OSError:
        status["check_error"] = True
    return status
