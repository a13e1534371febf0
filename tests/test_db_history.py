"""Tests for HistoryStore and its persistence backends."""

import json

import pytest

from gourmet_lens.db import (
    MAX_HISTORY,
    STORAGE_KEY,
    HistoryStore,
    MemoryBackend,
    SQLiteBackend,
    ensure_schema,
)
from gourmet_lens.models import Dish, HistoryItem, ScanResult


def _item(n: int, dish_ids: list[str] | None = None) -> HistoryItem:
    dish_ids = dish_ids or [f"dish-0-{n}"]
    return HistoryItem(
        id=f"hist-{n}",
        timestamp=n,
        result=ScanResult(
            dishes=[
                Dish(id=d, name=f"Dish {d}", description="desc", category="Mains")
                for d in dish_ids
            ],
            cafe_name=f"Cafe {n}",
        ),
    )


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    s = HistoryStore(backend)
    s.load()
    return s


class TestHistoryStore:
    def test_empty_on_first_load(self, store):
        assert store.items == []
        assert len(store) == 0

    def test_append_prepends_and_persists(self, store, backend):
        store.append(_item(1))
        store.append(_item(2))

        assert [i.id for i in store.items] == ["hist-2", "hist-1"]
        saved = json.loads(backend.get(STORAGE_KEY))
        assert [i["id"] for i in saved] == ["hist-2", "hist-1"]

    def test_cap_keeps_ten_newest(self, store, backend):
        for n in range(15):
            store.append(_item(n))

        assert len(store) == MAX_HISTORY == 10
        assert [i.id for i in store.items] == [f"hist-{n}" for n in range(14, 4, -1)]
        assert len(json.loads(backend.get(STORAGE_KEY))) == 10

    def test_order_is_insertion_not_timestamp(self, store):
        store.append(_item(50))
        store.append(_item(3))  # older timestamp, appended later
        assert [i.id for i in store.items] == ["hist-3", "hist-50"]

    def test_update_dish_image_patches_every_match(self, store, backend):
        store.append(_item(1, ["shared", "other-1"]))
        store.append(_item(2, ["unrelated"]))
        store.append(_item(3, ["shared"]))

        patched = store.update_dish_image("shared", "data:image/png;base64,QQ==")

        assert patched == 2
        hist1 = store.get("hist-1")
        hist3 = store.get("hist-3")
        assert hist1.result.dishes[0].image_url == "data:image/png;base64,QQ=="
        assert hist3.result.dishes[0].image_url == "data:image/png;base64,QQ=="
        # Other fields untouched
        assert hist1.result.dishes[0].name == "Dish shared"
        assert hist1.result.dishes[0].description == "desc"
        assert hist1.result.dishes[1].image_url is None
        assert store.get("hist-2").result.dishes[0].image_url is None

        saved = json.loads(backend.get(STORAGE_KEY))
        assert saved[0]["result"]["dishes"][0]["imageUrl"] == "data:image/png;base64,QQ=="

    def test_update_unknown_dish(self, store):
        store.append(_item(1))
        assert store.update_dish_image("nope", "data:x") == 0

    def test_clear_erases_persisted_data(self, store, backend):
        for n in range(5):
            store.append(_item(n))

        store.clear()

        assert store.items == []
        assert backend.get(STORAGE_KEY) is None

    def test_load_restores_saved_items(self, backend):
        first = HistoryStore(backend)
        first.load()
        first.append(_item(1))
        first.append(_item(2))

        second = HistoryStore(backend)
        items = second.load()
        assert [i.id for i in items] == ["hist-2", "hist-1"]
        assert items[0].result.cafe_name == "Cafe 2"

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            '{"id": "hist-1"}',
            '[{"id": "hist-1"}]',
            "42",
            '[{"id": "h", "timestamp": 1, "result": []}]',
            '[{"id": "h", "timestamp": 1, "result": "x"}]',
            '[{"id": "h", "timestamp": 1, "result": {"dishes": ["x"]}}]',
            '["hist-1"]',
        ],
    )
    def test_load_discards_corrupt_data(self, raw):
        backend = MemoryBackend({STORAGE_KEY: raw})
        store = HistoryStore(backend)
        assert store.load() == []
        assert len(store) == 0

    def test_items_is_a_copy_of_the_list(self, store):
        store.append(_item(1))
        store.items.clear()
        assert len(store) == 1


class TestSQLiteBackend:
    def test_schema_creates_table(self, tmp_path):
        conn = ensure_schema(tmp_path / "sub" / "h.db")
        tables = {
            r["name"]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert "kv_store" in tables
        conn.close()

    def test_set_get_delete(self, tmp_path):
        backend = SQLiteBackend(tmp_path / "h.db")
        assert backend.get("k") is None
        backend.set("k", "v1")
        backend.set("k", "v2")
        assert backend.get("k") == "v2"
        backend.delete("k")
        assert backend.get("k") is None
        backend.close()

    def test_history_survives_reopen(self, tmp_path):
        db_path = tmp_path / "h.db"
        backend = SQLiteBackend(db_path)
        store = HistoryStore(backend)
        store.load()
        store.append(_item(7))
        backend.close()

        reopened = SQLiteBackend(db_path)
        items = HistoryStore(reopened).load()
        assert [i.id for i in items] == ["hist-7"]
        reopened.close()
