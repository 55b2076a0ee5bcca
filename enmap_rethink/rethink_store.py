"""
RethinkDB implementation of DatabaseServer / TableStore.

Uses the official `rethinkdb` driver with the asyncio loop type. Driver errors
are translated into provider errors here so nothing above this module needs to
know about Reql* exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from rethinkdb import RethinkDB
from rethinkdb.errors import ReqlDriverError, ReqlError, ReqlOpFailedError

from .errors import (
    AlreadyExistsError,
    BackendConnectionError,
    BackendReadError,
    BackendWriteError,
    SchemaEnsureError,
)
from .settings import ProviderSettings

logger = logging.getLogger(__name__)

# Query builder. The asyncio loop type is selected when connecting; building
# queries does not depend on it.
r = RethinkDB()


def _already_exists(e: ReqlError) -> bool:
    return isinstance(e, ReqlOpFailedError) and "already exists" in str(e)


async def _collect(result: Any) -> list[Any]:
    # Table reads come back as an asyncio cursor; small results may be plain lists.
    if hasattr(result, "fetch_next"):
        rows = []
        while await result.fetch_next():
            rows.append(await result.next())
        return rows
    return list(result or [])


async def connect_rethink(settings: ProviderSettings) -> "RethinkServer":
    logger.debug("RETHINK CONNECT: %s:%s db=%s", settings.host, settings.port, settings.db_name)
    r.set_loop_type("asyncio")
    try:
        conn = await r.connect(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password,
            timeout=settings.timeout,
        )
    except (ReqlDriverError, OSError, asyncio.TimeoutError) as e:
        raise BackendConnectionError(
            "could not connect to RethinkDB",
            {"host": settings.host, "port": settings.port, "error": str(e)},
        ) from e
    return RethinkServer(conn)


class RethinkServer:
    """
    One driver connection, shared by the tables it hands out.
    """

    def __init__(self, conn: Any):
        self._conn = conn

    async def _run(self, query: Any) -> Any:
        return await query.run(self._conn)

    async def _run_schema(self, query: Any, **context: Any) -> Any:
        try:
            return await self._run(query)
        except ReqlDriverError as e:
            raise BackendConnectionError("lost connection during schema ensure", context) from e
        except ReqlError as e:
            if _already_exists(e):
                raise AlreadyExistsError(str(e), context) from e
            raise SchemaEnsureError(str(e), context) from e

    async def db_list(self) -> list[str]:
        return list(await self._run_schema(r.db_list()))

    async def db_create(self, db_name: str) -> None:
        await self._run_schema(r.db_create(db_name), db=db_name)

    async def table_list(self, db_name: str) -> list[str]:
        return list(await self._run_schema(r.db(db_name).table_list(), db=db_name))

    async def table_create(self, db_name: str, table_name: str) -> None:
        await self._run_schema(r.db(db_name).table_create(table_name), db=db_name, table=table_name)

    def table(self, db_name: str, table_name: str) -> "RethinkTableStore":
        return RethinkTableStore(self, db_name, table_name)

    async def close(self) -> None:
        try:
            await self._conn.close()
        except ReqlDriverError as e:
            logger.warning("RETHINK CLOSE: failed to close connection: %r", e)


class RethinkTableStore:
    """
    Stores rows as {"id": key, "data": payload} in a single RethinkDB table.

    - upsert uses conflict="replace", so a key maps to at most one row.
    - deleting an absent id reports zero deletions and is not an error.
    """

    def __init__(self, server: RethinkServer, db_name: str, table_name: str):
        self._server = server
        self.db_name = db_name
        self.table_name = table_name

    @property
    def _table(self) -> Any:
        return r.db(self.db_name).table(self.table_name)

    def _context(self, **extra: Any) -> dict[str, Any]:
        return {"table": f"{self.db_name}.{self.table_name}", **extra}

    async def upsert(self, key: Any, payload: Any) -> None:
        query = self._table.insert({"id": key, "data": payload}, conflict="replace", return_changes=False)
        try:
            result = await self._server._run(query)
        except ReqlError as e:
            raise BackendWriteError(str(e), self._context(key=key)) from e
        if result and result.get("errors"):
            raise BackendWriteError(result.get("first_error", "insert failed"), self._context(key=key))

    async def get(self, key: Any) -> dict[str, Any] | None:
        try:
            return await self._server._run(self._table.get(key))
        except ReqlError as e:
            raise BackendReadError(str(e), self._context(key=key)) from e

    async def delete(self, key: Any) -> None:
        try:
            await self._server._run(self._table.get(key).delete())
        except ReqlError as e:
            raise BackendWriteError(str(e), self._context(key=key)) from e

    async def delete_all(self) -> int:
        try:
            result = await self._server._run(self._table.delete())
        except ReqlError as e:
            raise BackendWriteError(str(e), self._context()) from e
        return int((result or {}).get("deleted", 0))

    async def read_all(self) -> list[dict[str, Any]]:
        try:
            return await _collect(await self._server._run(self._table))
        except ReqlError as e:
            raise BackendReadError(str(e), self._context()) from e

    async def exists(self, key: Any) -> bool:
        try:
            return bool(await self._server._run(self._table.get(key).ne(None)))
        except ReqlError as e:
            raise BackendReadError(str(e), self._context(key=key)) from e
