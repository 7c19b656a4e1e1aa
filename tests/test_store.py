"""Tests for PartStore and LazyCache."""

from __future__ import annotations

import io
import json
import threading

import pytest

from xlbook.contracts.errors import MalformedPartError, MissingPartError
from xlbook.engine.cache import LazyCache
from xlbook.engine.store import PartStore
from xlbook.observe.events import EventEmitter
from xlbook.xml.worksheet import WorksheetPart

SHEET = b'<worksheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main"><sheetData/></worksheet>'


class CountingFactory:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, data: bytes) -> WorksheetPart:
        self.calls += 1
        return WorksheetPart.parse(data)


# ---------------------------------------------------------------------------
# PartStore
# ---------------------------------------------------------------------------


class TestPartStore:
    def test_load_store_delete(self):
        store = PartStore({"a.xml": b"<a/>"})
        assert store.load("a.xml") == b"<a/>"
        assert "a.xml" in store
        store.store("b.xml", b"<b/>")
        assert store.paths() == {"a.xml", "b.xml"}
        store.delete("a.xml")
        assert store.load("a.xml") is None
        assert len(store) == 1

    def test_delete_missing_is_noop(self):
        store = PartStore()
        store.delete("nope.xml")
        assert len(store) == 0

    def test_locked_is_reentrant(self):
        store = PartStore({"a.xml": b"<a/>"})
        with store.locked("a.xml"):
            with store.locked("a.xml"):
                store.store("a.xml", b"<b/>")
        assert store.load("a.xml") == b"<b/>"

    def test_disjoint_paths_do_not_block(self):
        store = PartStore({"a.xml": b"", "b.xml": b""})
        done = threading.Event()

        def writer():
            store.store("b.xml", b"<b/>")
            done.set()

        with store.locked("a.xml"):
            t = threading.Thread(target=writer)
            t.start()
            assert done.wait(timeout=5)
            t.join()
        assert store.load("b.xml") == b"<b/>"

    def test_same_path_is_serialized(self):
        store = PartStore({"a.xml": b""})
        finished = threading.Event()

        def writer():
            store.store("a.xml", b"<late/>")
            finished.set()

        with store.locked("a.xml"):
            t = threading.Thread(target=writer)
            t.start()
            assert not finished.wait(timeout=0.2)
            store.store("a.xml", b"<early/>")
        t.join(timeout=5)
        assert store.load("a.xml") == b"<late/>"

    def test_concurrent_writers_on_many_paths(self):
        store = PartStore()

        def fill(worker: int):
            for i in range(200):
                store.store(f"w{worker}/p{i}.xml", f"{worker}:{i}".encode())

        threads = [threading.Thread(target=fill, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store) == 8 * 200
        assert store.load("w3/p17.xml") == b"3:17"


# ---------------------------------------------------------------------------
# LazyCache
# ---------------------------------------------------------------------------


class TestLazyCache:
    def test_materializes_once(self):
        store = PartStore({"s.xml": SHEET})
        cache = LazyCache(store)
        factory = CountingFactory()
        first = cache.materialize("s.xml", factory)
        second = cache.materialize("s.xml", factory)
        assert first is second
        assert factory.calls == 1
        assert cache.is_materialized("s.xml")
        assert store.load("s.xml") is first

    def test_missing_path_is_a_corrupt_package(self):
        cache = LazyCache(PartStore())
        with pytest.raises(MissingPartError, match="part gone.xml is missing") as exc:
            cache.materialize("gone.xml", WorksheetPart.parse)
        assert isinstance(exc.value, MalformedPartError)
        assert exc.value.code == "ERR_WORKBOOK_CORRUPT"
        assert exc.value.path == "gone.xml"
        assert not cache.is_materialized("gone.xml")

    def test_malformed_bytes(self):
        store = PartStore({"s.xml": b"<worksheet><sheetData>"})
        cache = LazyCache(store)
        with pytest.raises(MalformedPartError) as exc:
            cache.materialize("s.xml", WorksheetPart.parse)
        assert exc.value.path == "s.xml"
        assert exc.value.code == "ERR_WORKBOOK_CORRUPT"
        assert store.load("s.xml") == b"<worksheet><sheetData>"
        assert not cache.is_materialized("s.xml")

    def test_restored_bytes_recover(self):
        store = PartStore({"s.xml": b"not xml"})
        cache = LazyCache(store)
        with pytest.raises(MalformedPartError):
            cache.materialize("s.xml", WorksheetPart.parse)
        store.store("s.xml", SHEET)
        assert isinstance(cache.materialize("s.xml", WorksheetPart.parse), WorksheetPart)

    def test_reset_rechecks_without_reparsing(self):
        one_row = (
            b'<worksheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main"><sheetData>'
            b'<row r="1"><c r="A1"><v>1</v></c></row></sheetData></worksheet>'
        )
        store = PartStore({"s.xml": one_row})
        cache = LazyCache(store)
        factory = CountingFactory()
        ws = cache.materialize("s.xml", factory)
        data = ws.edit_sheet_data()
        data.row(3, create=True)
        data.rows.insert(0, data.rows.pop())
        assert not data.is_sorted()

        cache.reset()
        assert not cache.is_materialized("s.xml")
        again = cache.materialize("s.xml", factory)
        assert again is ws
        assert factory.calls == 1
        assert [n for n, _ in again.sheet_data.iter_rows()] == [1, 3]

    def test_discard_and_adopt(self):
        store = PartStore()
        cache = LazyCache(store)
        model = WorksheetPart.new()
        assert cache.adopt("new.xml", model) is model
        assert cache.is_materialized("new.xml")
        cache.discard("new.xml")
        assert not cache.is_materialized("new.xml")

    def test_emits_materialized_event(self):
        stream = io.StringIO()
        cache = LazyCache(PartStore({"s.xml": SHEET}), EventEmitter(enabled=True, stream=stream))
        cache.materialize("s.xml", WorksheetPart.parse)
        cache.materialize("s.xml", WorksheetPart.parse)
        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [line["event"] for line in lines] == ["part.materialized"]
        assert lines[0]["data"] == {"path": "s.xml"}
