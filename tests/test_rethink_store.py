from __future__ import annotations

import asyncio

import pytest
from rethinkdb.errors import ReqlDriverError, ReqlOpFailedError

from enmap_rethink import rethink_store
from enmap_rethink.connection import open_table
from enmap_rethink.errors import (
    AlreadyExistsError,
    BackendConnectionError,
    BackendReadError,
    BackendWriteError,
    SchemaEnsureError,
)
from enmap_rethink.rethink_store import RethinkServer, connect_rethink
from enmap_rethink.settings import ProviderSettings


class FakeConn:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeCursor:
    def __init__(self, rows):
        self._rows = list(rows)

    async def fetch_next(self) -> bool:
        return bool(self._rows)

    async def next(self):
        return self._rows.pop(0)


def _server_returning(*results):
    """RethinkServer whose queries return (or raise) `results` in order."""
    server = RethinkServer(FakeConn())
    pending = list(results)
    seen = []

    async def _run(query):
        seen.append(query)
        result = pending.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    server._run = _run
    server.seen = seen
    return server


def test_connect_failure_is_a_connection_error(monkeypatch):
    async def _refuse(**kwargs):
        raise ReqlDriverError("Could not connect to localhost:28015.")

    monkeypatch.setattr(rethink_store.r, "set_loop_type", lambda library=None: None)
    monkeypatch.setattr(rethink_store.r, "connect", _refuse)

    with pytest.raises(BackendConnectionError) as exc_info:
        asyncio.run(connect_rethink(ProviderSettings(name="cache")))
    assert exc_info.value.context["port"] == 28015


def test_connect_passes_settings_and_close_releases(monkeypatch):
    conn = FakeConn()
    received = {}

    async def _connect(**kwargs):
        received.update(kwargs)
        return conn

    monkeypatch.setattr(rethink_store.r, "set_loop_type", lambda library=None: received.setdefault("loop", library))
    monkeypatch.setattr(rethink_store.r, "connect", _connect)

    async def _run():
        server = await connect_rethink(ProviderSettings(name="cache", host="db", port=29015, password="pw"))
        await server.close()

    asyncio.run(_run())

    assert received == {"loop": "asyncio", "host": "db", "port": 29015, "user": "admin", "password": "pw", "timeout": 20}
    assert conn.closed


def test_create_race_maps_to_already_exists():
    server = _server_returning(ReqlOpFailedError("Database `enmap` already exists."))
    with pytest.raises(AlreadyExistsError):
        asyncio.run(server.db_create("enmap"))


def test_other_create_failure_maps_to_schema_error():
    server = _server_returning(ReqlOpFailedError("Cannot create table: not enough replicas."))
    with pytest.raises(SchemaEnsureError):
        asyncio.run(server.table_create("enmap", "cache"))


def test_dropped_connection_during_schema_ensure():
    server = _server_returning(ReqlDriverError("Connection is closed."))
    with pytest.raises(BackendConnectionError):
        asyncio.run(server.db_list())


def test_open_table_against_rethink_adapter():
    server = _server_returning(
        ["rethinkdb", "test"],  # db_list
        {"dbs_created": 1},  # db_create
        [],  # table_list
        ReqlOpFailedError("Table `enmap.cache` already exists."),  # lost the race
    )

    store = asyncio.run(open_table(server, ProviderSettings(name="cache")))

    assert (store.db_name, store.table_name) == ("enmap", "cache")
    assert len(server.seen) == 4


def test_upsert_reports_write_errors():
    store = _server_returning({"errors": 1, "first_error": "Duplicate primary key"}).table("enmap", "cache")
    with pytest.raises(BackendWriteError) as exc_info:
        asyncio.run(store.upsert("k", "v"))
    assert exc_info.value.message == "Duplicate primary key"
    assert exc_info.value.context == {"table": "enmap.cache", "key": "k"}


def test_upsert_and_delete_success():
    store = _server_returning({"inserted": 1, "errors": 0}, {"deleted": 0}).table("enmap", "cache")

    async def _run():
        await store.upsert("k", '{"a":1}')
        await store.delete("absent")

    asyncio.run(_run())


def test_read_all_drains_cursor():
    rows = [{"id": "a", "data": "1"}, {"id": "b", "data": "[2]"}]
    store = _server_returning(FakeCursor(rows)).table("enmap", "cache")
    assert asyncio.run(store.read_all()) == rows


def test_read_failure_maps_to_read_error():
    store = _server_returning(ReqlOpFailedError("Table `enmap.cache` does not exist.")).table("enmap", "cache")
    with pytest.raises(BackendReadError):
        asyncio.run(store.get("k"))


def test_delete_all_returns_deleted_count_and_exists():
    store = _server_returning({"deleted": 3}, True, None).table("enmap", "cache")

    async def _run():
        assert await store.delete_all() == 3
        assert await store.exists("k") is True
        assert await store.get("k") is None

    asyncio.run(_run())
