from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from taurus.analysis.summaries import (
    DB_FILE_NAME,
    MARKING_TABLE,
    PersistentSummaryStore,
    open_calledge_store,
    open_marking_store,
    without_type_params,
)
from taurus.exceptions import CorruptRecordError, StoreUnavailableError
from taurus.schema import MarkedItem
from tests.record_helpers import call, marked


def test_insert_get_and_overwrite(depstore: Path) -> None:
    with open_marking_store(depstore) as store:
        assert store.get("app::sign") is None
        assert store.insert("app::sign", marked(requires_audit="crypto")) is None
        previous = store.insert("app::sign", marked(audited="crypto"))
        assert previous is not None
        assert previous.marking.requires_audit == "crypto"
        current = store.get("app::sign")
        assert current is not None
        assert current.marking.audited == "crypto"
        assert current.marking.requires_audit is None
        assert len(store) == 1
        assert store.len() == 1


def test_records_survive_reopen_and_stream(depstore: Path) -> None:
    with open_calledge_store(depstore) as store:
        store.insert("app::main<>", [call("app::a", 3), call("app::b", 4)])
        store.insert("app::a<>", [])
    with open_calledge_store(depstore) as reopened:
        assert len(reopened) == 2
        seen: dict[str, int] = {}
        reopened.for_each(lambda key, edges: seen.__setitem__(key, len(edges)))
        assert seen == {"app::main<>": 2, "app::a<>": 0}
        edges = reopened.get("app::main<>")
        assert edges is not None
        assert [edge.callee for edge in edges] == ["app::a", "app::b"]
        assert edges[1].src_loc.line == 4


def test_get_populates_cache_from_disk(depstore: Path) -> None:
    with open_marking_store(depstore) as writer:
        writer.insert("app::main", marked(entry=True))
    with open_marking_store(depstore) as reader:
        first = reader.get("app::main")
        second = reader.get("app::main")
        assert first is not None
        assert first is second


def test_absent_keys_are_looked_up_once(depstore: Path) -> None:
    with open_marking_store(depstore) as store:
        assert store.get("app::plain") is None
        # A row written behind the store's back is not seen: the miss is cached.
        connection = sqlite3.connect(depstore / MARKING_TABLE / DB_FILE_NAME)
        with connection:
            connection.execute(
                "INSERT INTO data(key, value) VALUES (?, ?)",
                ("app::plain", marked(entry=True).model_dump_json()),
            )
        connection.close()
        assert store.get("app::plain") is None

        assert store.insert("app::plain", marked(audited="crypto")) is None
        current = store.get("app::plain")
        assert current is not None
        assert current.marking.audited == "crypto"


def test_insert_many_clears_cached_misses(depstore: Path) -> None:
    with open_calledge_store(depstore) as store:
        assert store.get("app::main<>") is None
        store.insert_many([("app::main<>", [call("app::a", 1)])])
        edges = store.get("app::main<>")
        assert edges is not None
        assert [edge.callee for edge in edges] == ["app::a"]


def test_tables_live_in_separate_directories(depstore: Path) -> None:
    with open_marking_store(depstore):
        pass
    with open_calledge_store(depstore):
        pass
    assert (depstore / MARKING_TABLE / DB_FILE_NAME).is_file()
    assert (depstore / "calledge" / DB_FILE_NAME).is_file()


def test_corrupt_value_is_fatal(depstore: Path) -> None:
    with open_marking_store(depstore):
        pass
    connection = sqlite3.connect(depstore / MARKING_TABLE / DB_FILE_NAME)
    with connection:
        connection.execute(
            "INSERT INTO data(key, value) VALUES (?, ?)",
            ("app::broken", b"{not json"),
        )
    connection.close()
    with open_marking_store(depstore) as store:
        with pytest.raises(CorruptRecordError) as exc_info:
            store.get("app::broken")
        assert exc_info.value.key == "app::broken"
        with pytest.raises(CorruptRecordError):
            list(store.items())


def test_schema_mismatch_is_corruption(depstore: Path) -> None:
    with open_calledge_store(depstore) as store:
        store.insert("app::main<>", [call("app::a", 1)])
    # Reading call-edge rows as markings must not silently coerce them.
    store = PersistentSummaryStore(depstore / "calledge", MarkedItem)
    try:
        with pytest.raises(CorruptRecordError):
            store.get("app::main<>")
    finally:
        store.close()


def test_uncreatable_location_is_fatal(tmp_path: Path) -> None:
    blocker = tmp_path / "depstore"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(StoreUnavailableError):
        open_marking_store(blocker)


def test_garbage_database_file_is_fatal(depstore: Path) -> None:
    table = depstore / MARKING_TABLE
    table.mkdir(parents=True)
    (table / DB_FILE_NAME).write_bytes(b"definitely not sqlite" * 64)
    with pytest.raises(StoreUnavailableError):
        open_marking_store(depstore)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("app::sign<u8,>", "app::sign"),
        ("app::Vec::push<app::Key,alloc::Global,>", "app::Vec::push"),
        ("app::main<>", "app::main"),
        ("app::main", "app::main"),
    ],
)
def test_without_type_params(name: str, expected: str) -> None:
    assert without_type_params(name) == expected
