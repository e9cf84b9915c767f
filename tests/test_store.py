from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from tabnav.browser import BrowserMirror
from tabnav.engine import NavigationEngine
from tabnav.errors import StoreUnavailableError
from tabnav.recency import TabRef
from tabnav.store import CURRENT_TAB_KEY, RECENT_TABS_KEY, MemoryStore, SqliteStore, connect


def test_memory_store_get_set():
    store = MemoryStore()

    async def _scenario():
        assert await store.get("missing") is None
        await store.set("k", [1, 2])
        assert await store.get("k") == [1, 2]
        await store.set("k", None)
        assert await store.get("k") is None

    asyncio.run(_scenario())


def test_memory_store_does_not_share_values():
    store = MemoryStore({"k": [1]})

    async def _scenario():
        value = await store.get("k")
        value.append(2)
        assert await store.get("k") == [1]

    asyncio.run(_scenario())


def test_sqlite_store_roundtrip_across_instances(tmp_path: Path):
    db_path = tmp_path / "tabnav.db"

    async def _write():
        store = SqliteStore(db_path)
        await store.set(RECENT_TABS_KEY, [{"tab_id": 1, "window_id": 10}])
        await store.set(CURRENT_TAB_KEY, 1)
        await store.set(CURRENT_TAB_KEY, 2)

    async def _read():
        store = SqliteStore(db_path)
        return await store.get(RECENT_TABS_KEY), await store.get(CURRENT_TAB_KEY), await store.get("nope")

    asyncio.run(_write())
    tabs, anchor, missing = asyncio.run(_read())

    assert tabs == [{"tab_id": 1, "window_id": 10}]
    assert anchor == 2
    assert missing is None

    conn = connect(db_path)
    rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
    conn.close()
    assert [r["key"] for r in rows] == [CURRENT_TAB_KEY, RECENT_TABS_KEY]


def test_sqlite_store_unavailable(tmp_path: Path):
    # A directory cannot be opened as a database file.
    store = SqliteStore(tmp_path)

    with pytest.raises(StoreUnavailableError):
        asyncio.run(store.get(RECENT_TABS_KEY))
    with pytest.raises(StoreUnavailableError):
        asyncio.run(store.set(RECENT_TABS_KEY, []))


def test_history_survives_engine_restart(tmp_path: Path):
    db_path = tmp_path / "tabnav.db"

    first = NavigationEngine(SqliteStore(db_path), BrowserMirror())

    async def _record():
        await first.record_activation(TabRef(1, 10))
        await first.record_activation(TabRef(2, 20))

    asyncio.run(_record())

    second = NavigationEngine(SqliteStore(db_path), BrowserMirror())
    tabs, anchor = asyncio.run(second.history())
    assert tabs == [TabRef(2, 20), TabRef(1, 10)]
    assert tabs[0].window_id == 20
    assert anchor == 2


def test_memory_store_set_many():
    store = MemoryStore({"a": 1})

    async def _scenario():
        await store.set_many({"a": 2, "b": [3]})
        return await store.get("a"), await store.get("b")

    assert asyncio.run(_scenario()) == (2, [3])


def test_sqlite_set_many_is_all_or_nothing(tmp_path: Path):
    db_path = tmp_path / "tabnav.db"
    store = SqliteStore(db_path)
    asyncio.run(store.set_many({RECENT_TABS_KEY: [{"tab_id": 1, "window_id": 10}], CURRENT_TAB_KEY: 1}))

    conn = connect(db_path)
    conn.executescript(
        """
        CREATE TRIGGER refuse_anchor_insert BEFORE INSERT ON kv WHEN NEW.key = 'current_tab'
        BEGIN SELECT RAISE(ABORT, 'anchor write refused'); END;
        CREATE TRIGGER refuse_anchor_update BEFORE UPDATE ON kv WHEN NEW.key = 'current_tab'
        BEGIN SELECT RAISE(ABORT, 'anchor write refused'); END;
        """
    )
    conn.close()

    with pytest.raises(StoreUnavailableError, match="anchor write refused"):
        asyncio.run(
            store.set_many({
                RECENT_TABS_KEY: [{"tab_id": 2, "window_id": 10}, {"tab_id": 1, "window_id": 10}],
                CURRENT_TAB_KEY: 2,
            })
        )

    assert asyncio.run(store.get(RECENT_TABS_KEY)) == [{"tab_id": 1, "window_id": 10}]
    assert asyncio.run(store.get(CURRENT_TAB_KEY)) == 1
