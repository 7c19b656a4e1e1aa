"""Workbook: one open document, its part store, and the sheet lifecycle."""

from __future__ import annotations

import posixpath
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import NamedTuple
from xml.parsers import expat

from xlbook.config import EngineConfig
from xlbook.contracts.common import WarningDetail
from xlbook.contracts.errors import (
    InvalidSheetNameError,
    LastSheetError,
    MalformedPartError,
    NoActiveSheetInGroupError,
    SheetNotFoundError,
)
from xlbook.contracts.responses import SheetMeta, WorkbookMeta
from xlbook.engine import names
from xlbook.engine.cache import LazyCache
from xlbook.engine.store import PartStore
from xlbook.io.container import read_package, write_package
from xlbook.io.fileops import atomic_write, fingerprint
from xlbook.observe.events import EventEmitter
from xlbook.xml.package import (
    CONTENT_TYPES_PATH,
    CT_WORKBOOK_MACRO,
    CT_WORKSHEET,
    PACKAGE_RELS_PATH,
    REL_OFFICE_DOCUMENT,
    REL_SHARED_STRINGS,
    REL_WORKSHEET,
    ContentTypes,
    Relationships,
    blank_parts,
    rels_path_for,
    relative_target,
    resolve_target,
)
from xlbook.xml.sharedstrings import SharedStrings
from xlbook.xml.workbook import WorkbookPart
from xlbook.xml.worksheet import WorksheetPart

MAX_SHEET_NAME_LENGTH = 31
INVALID_SHEET_NAME_CHARS = frozenset(":\\/?*[]")
DEFAULT_WORKBOOK_PATH = "xl/workbook.xml"


def check_sheet_name(name: str) -> None:
    """Raise ``InvalidSheetNameError`` unless *name* is a legal sheet name."""
    if not name:
        raise InvalidSheetNameError(name, "the sheet name can not be blank")
    if len(name) > MAX_SHEET_NAME_LENGTH:
        raise InvalidSheetNameError(name, f"the sheet name length exceeds the {MAX_SHEET_NAME_LENGTH} characters limit")
    if any(ch in INVALID_SHEET_NAME_CHARS for ch in name):
        raise InvalidSheetNameError(name, "the sheet can not contain any of the characters :\\/?*[]")
    if name.startswith("'") or name.endswith("'"):
        raise InvalidSheetNameError(name, "the first or last character of the sheet name can not be a single quote")


class SheetEntry(NamedTuple):
    index: int
    sheet_id: int
    name: str
    rid: str
    path: str
    state: str


class Workbook:
    """An open document: parts in a ``PartStore``, parsed lazily through a ``LazyCache``.

    ``lock`` guards the sheet list, book views and defined names. Operations
    that only touch one worksheet resolve its part path under ``lock`` and
    then work under that part's store lock alone.
    """

    @classmethod
    def new(cls, *, config: EngineConfig | None = None, events: EventEmitter | None = None) -> "Workbook":
        config = config or EngineConfig()
        sheet = WorksheetPart.new(selected=True).to_bytes()
        return cls(blank_parts(config.default_sheet_name, sheet), config=config, events=events)

    @classmethod
    def open(
        cls, path: str | Path, *, config: EngineConfig | None = None, events: EventEmitter | None = None
    ) -> "Workbook":
        p = Path(path).resolve()
        if not p.exists():
            raise FileNotFoundError(f"Workbook not found: {p}")
        book = cls(read_package(p), path=p, config=config, events=events)
        book.fp = fingerprint(p)
        return book

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "Workbook":
        return cls(read_package(data), **kwargs)

    def __init__(
        self,
        parts: dict[str, bytes],
        *,
        path: str | Path | None = None,
        config: EngineConfig | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self.path = Path(path).resolve() if path else None
        self.fp: str | None = None
        self.config = config or EngineConfig()
        self.events = events or EventEmitter(self.config.emit_events)
        self.store = PartStore(parts)
        self.cache = LazyCache(self.store, self.events)
        self.lock = threading.RLock()
        self._max_sheet_id: int | None = None
        self.parts_written = 0

    def __enter__(self) -> "Workbook":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -----------------------------------------------------------------------
    # Part plumbing
    # -----------------------------------------------------------------------
    def get_workbook_path(self) -> str:
        """Workbook part path from the package relationships; ``""`` when unresolvable."""
        if PACKAGE_RELS_PATH not in self.store:
            return ""
        rels = self.cache.materialize(PACKAGE_RELS_PATH, Relationships.parse)
        for rel in rels.by_type(*REL_OFFICE_DOCUMENT):
            target = rel.get("Target")
            if target:
                return resolve_target("", target)
        return ""

    def get_workbook_rels_path(self) -> str:
        return rels_path_for(self._workbook_path())

    def _workbook_path(self) -> str:
        return self.get_workbook_path() or DEFAULT_WORKBOOK_PATH

    def workbook_part(self) -> WorkbookPart:
        return self.cache.materialize(self._workbook_path(), WorkbookPart.parse)

    def workbook_rels(self) -> Relationships:
        path = self.get_workbook_rels_path()
        if path not in self.store:
            return self.cache.adopt(path, Relationships.new())
        return self.cache.materialize(path, Relationships.parse)

    def content_types(self) -> ContentTypes:
        return self.cache.materialize(CONTENT_TYPES_PATH, ContentTypes.parse)

    def worksheet_part(self, path: str) -> WorksheetPart:
        return self.cache.materialize(path, WorksheetPart.parse)

    def shared_strings(self) -> SharedStrings:
        """Read-only shared string table; empty when the workbook has none."""
        with self.lock:
            wb_path = self._workbook_path()
            rels = self.workbook_rels()
            found = rels.by_type(*REL_SHARED_STRINGS)
            if not found:
                return SharedStrings()
            path = resolve_target(wb_path, found[0].get("Target", ""))
        data = self.store.load(path)
        if not isinstance(data, (bytes, bytearray)):
            return SharedStrings()
        try:
            return SharedStrings.from_bytes(bytes(data))
        except expat.ExpatError as e:
            raise MalformedPartError(path, e) from e

    def _sheet_entries(self) -> list[SheetEntry]:
        wb = self.workbook_part()
        wb_path = self._workbook_path()
        rels = self.workbook_rels()
        entries: list[SheetEntry] = []
        for index, sheet in enumerate(wb.sheets()):
            rid = wb.sheet_rid(sheet)
            rel = rels.get(rid)
            path = resolve_target(wb_path, rel.get("Target", "")) if rel is not None else ""
            sheet_id = sheet.get("sheetId", "0")
            entries.append(SheetEntry(
                index=index,
                sheet_id=int(sheet_id) if sheet_id.isdigit() else 0,
                name=sheet.get("name", ""),
                rid=rid,
                path=path,
                state=sheet.get("state", "visible"),
            ))
        return entries

    def _entry(self, name: str) -> SheetEntry:
        for entry in self._sheet_entries():
            if entry.name == name:
                return entry
        raise SheetNotFoundError(name)

    def _next_sheet_id(self, entries: list[SheetEntry]) -> int:
        highest = max((e.sheet_id for e in entries), default=0)
        if self._max_sheet_id is not None:
            highest = max(highest, self._max_sheet_id)
        return highest + 1

    @contextmanager
    def worksheet(self, sheet: str) -> Iterator[WorksheetPart]:
        """Materialize *sheet* once and hold its part lock for the duration."""
        with self.lock:
            path = self.sheet_part_path(sheet)
        with self.store.locked(path):
            yield self.worksheet_part(path)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------
    def get_sheet_list(self) -> list[str]:
        with self.lock:
            return [e.name for e in self._sheet_entries()]

    def get_sheet_map(self) -> dict[int, str]:
        """``{sheetId: name}`` in workbook order."""
        with self.lock:
            return {e.sheet_id: e.name for e in self._sheet_entries()}

    def get_sheet_name(self, index: int) -> str:
        with self.lock:
            entries = self._sheet_entries()
        if 0 <= index < len(entries):
            return entries[index].name
        return ""

    def get_sheet_index(self, name: str) -> int:
        with self.lock:
            for entry in self._sheet_entries():
                if entry.name == name:
                    return entry.index
        return -1

    def get_sheet_id(self, name: str) -> int:
        with self.lock:
            for entry in self._sheet_entries():
                if entry.name == name:
                    return entry.sheet_id
        return -1

    def sheet_part_path(self, name: str) -> str:
        with self.lock:
            return self._entry(name).path

    def get_active_sheet_index(self) -> int:
        with self.lock:
            return self.workbook_part().active_tab()

    def list_sheets(self) -> list[SheetMeta]:
        with self.lock:
            active = self.workbook_part().active_tab()
            result: list[SheetMeta] = []
            for e in self._sheet_entries():
                with self.store.locked(e.path):
                    selected = self.worksheet_part(e.path).is_selected() if e.path in self.store else False
                result.append(SheetMeta(
                    name=e.name, index=e.index, sheet_id=e.sheet_id, part=e.path,
                    visible=e.state, active=e.index == active, selected=selected,
                ))
            return result

    def get_workbook_meta(self) -> WorkbookMeta:
        with self.lock:
            parts = sorted(self.store.paths())
            vba = [p for p in parts if p.endswith("vbaProject.bin")]
            has_macros = bool(vba) or self.content_types().content_type(self._workbook_path()) == CT_WORKBOOK_MACRO
            warnings = []
            if has_macros:
                warnings.append(WarningDetail(
                    code="MACROS_PRESERVED",
                    message="Workbook contains VBA macros; they are kept as opaque parts.",
                    part=vba[0] if vba else None,
                ))
            return WorkbookMeta(
                path=str(self.path) if self.path else None,
                fingerprint=self.fp,
                sheets=self.list_sheets(),
                names=names.get_defined_names(self),
                active_sheet=self.workbook_part().active_tab(),
                parts=parts,
                has_macros=has_macros,
                warnings=warnings,
            )

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    def new_sheet(self, name: str) -> int:
        """Append a sheet and return its index; an existing name returns its index."""
        check_sheet_name(name)
        with self.lock:
            entries = self._sheet_entries()
            for entry in entries:
                if entry.name == name:
                    return entry.index

            wb = self.workbook_part()
            wb_path = self._workbook_path()
            sheet_id = self._next_sheet_id(entries)
            number = sheet_id
            base = posixpath.join(posixpath.dirname(wb_path), "worksheets")
            path = posixpath.join(base, f"sheet{number}.xml")
            while path in self.store:
                number += 1
                path = posixpath.join(base, f"sheet{number}.xml")

            self.cache.adopt(path, WorksheetPart.new())
            rid = self.workbook_rels().add(REL_WORKSHEET[0], relative_target(wb_path, path))
            self.content_types().add_override(path, CT_WORKSHEET)
            wb.add_sheet(name, sheet_id, rid)
            self._max_sheet_id = sheet_id

        self.events.emit("sheet.created", {"sheet": name, "sheet_id": sheet_id, "part": path})
        return len(entries)

    def delete_sheet(self, name: str) -> None:
        with self.lock:
            entries = self._sheet_entries()
            doomed = next((e for e in entries if e.name == name), None)
            if doomed is None:
                raise SheetNotFoundError(name)
            if len(entries) == 1:
                raise LastSheetError(name)

            wb = self.workbook_part()
            active = wb.active_tab()
            self._max_sheet_id = self._next_sheet_id(entries) - 1
            wb.remove_sheet(doomed.index)
            names.adjust_for_deleted_sheet(wb, doomed.index, doomed.name)
            self.workbook_rels().remove(doomed.rid)
            if doomed.path:
                sheet_rels = rels_path_for(doomed.path)
                self.content_types().remove_override(doomed.path)
                self.store.delete(doomed.path)
                self.store.delete(sheet_rels)
                self.cache.discard(doomed.path)
                self.cache.discard(sheet_rels)
            if active >= doomed.index:
                self.set_active_sheet(max(active - 1, 0))

        self.events.emit("sheet.deleted", {"sheet": name, "part": doomed.path})

    def set_sheet_name(self, old: str, new: str) -> None:
        check_sheet_name(new)
        if old == new:
            return
        with self.lock:
            entries = self._sheet_entries()
            source = next((e for e in entries if e.name == old), None)
            if source is None:
                raise SheetNotFoundError(old)
            if any(e.name == new for e in entries):
                raise InvalidSheetNameError(new, "a sheet with the same name already exists")
            wb = self.workbook_part()
            wb.rename_sheet(source.index, new)
            names.rename_sheet_references(wb, old, new)

        self.events.emit("sheet.renamed", {"from": old, "to": new})

    def move_sheet(self, name: str, index: int) -> None:
        """Move *name* to position *index*; an out-of-range index is ignored."""
        with self.lock:
            entries = self._sheet_entries()
            source = next((e for e in entries if e.name == name), None)
            if source is None:
                raise SheetNotFoundError(name)
            if index < 0 or index >= len(entries) or index == source.index:
                return
            wb = self.workbook_part()
            active = min(wb.active_tab(), len(entries) - 1)

            order = [e.index for e in entries]
            order.insert(index, order.pop(source.index))
            mapping = {old: new for new, old in enumerate(order)}

            wb.move_sheet(source.index, index)
            names.remap_scopes(wb, mapping)
            wb.set_active_tab(mapping[active])

    def set_active_sheet(self, index: int) -> None:
        """Make sheet *index* the active tab and the only selected sheet.

        Book views are created first when missing; an out-of-range index then
        leaves the active sheet unchanged.
        """
        with self.lock:
            wb = self.workbook_part()
            wb.ensure_workbook_view()
            entries = self._sheet_entries()
            if index < 0 or index >= len(entries):
                return
            wb.set_active_tab(index)
            for entry in entries:
                if entry.path not in self.store:
                    continue
                with self.store.locked(entry.path):
                    self.worksheet_part(entry.path).set_selected(entry.index == index)

    def group_sheets(self, sheets: list[str]) -> None:
        with self.lock:
            entries = {e.name: e for e in self._sheet_entries()}
            for name in sheets:
                if name not in entries:
                    raise SheetNotFoundError(name)
            active = self.workbook_part().active_tab()
            if not any(entries[name].index == active for name in sheets):
                raise NoActiveSheetInGroupError()
            for name in sheets:
                path = entries[name].path
                with self.store.locked(path):
                    self.worksheet_part(path).set_selected(True)

    def ungroup_sheets(self) -> None:
        with self.lock:
            active = self.workbook_part().active_tab()
            for entry in self._sheet_entries():
                if entry.index == active or entry.path not in self.store:
                    continue
                with self.store.locked(entry.path):
                    self.worksheet_part(entry.path).set_selected(False)

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------
    def flush(self) -> int:
        """Serialize every materialized model back to bytes in the store.

        Returns how many parts were serialized; parts never parsed keep their bytes.
        """
        written = 0
        with self.lock:
            for path in sorted(self.store.paths()):
                with self.store.locked(path):
                    entry = self.store.load(path)
                    if entry is None or isinstance(entry, (bytes, bytearray)):
                        continue
                    self.store.store(path, entry.to_bytes())
                    self.cache.discard(path)
                    written += 1
        return written

    def to_bytes(self) -> bytes:
        with self.lock:
            self.parts_written = self.flush()
            return write_package({p: self.store.load(p) for p in self.store.paths()})

    def save(self, path: str | Path | None = None) -> str:
        """Write the package atomically to *path* (default: where it was opened)."""
        with self.lock:
            target = Path(path).resolve() if path else self.path
            if target is None:
                raise ValueError("no path to save to; use save_as()")
            data = self.to_bytes()
            atomic_write(target, data)
            self.path = target
            self.fp = fingerprint(data)
        self.events.emit("workbook.saved", {"path": str(target), "fingerprint": self.fp})
        return str(target)

    def save_as(self, path: str | Path) -> str:
        return self.save(path)

    def close(self) -> None:
        with self.lock:
            self.cache.reset()
            self.store = PartStore()
            self.cache = LazyCache(self.store, self.events)
