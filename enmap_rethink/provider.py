"""
RethinkDB persistence provider for an in-memory map.

Typical use:

    provider = RethinkProvider("guild settings", fetch_all=True)
    cache: dict = {}
    await provider.init(cache)      # cache now mirrors the table
    provider.set("42", {"prefix": "!"})    # fire-and-forget write-through
    await provider.set_async("43", [1, 2])  # awaited write-through
    await provider.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from dotenv import load_dotenv

from .connection import Connector, open_table
from .errors import ClosedProviderError, ProviderNotReadyError
from .gateway import Submitted, WriteThroughGateway
from .hydration import hydrate
from .interfaces import DatabaseServer, WritableMap
from .readiness import ReadinessSignal
from .records import ProviderFeatures
from .rethink_store import connect_rethink
from .settings import ProviderSettings, get_settings

logger = logging.getLogger(__name__)


class RethinkProvider:
    def __init__(
        self,
        name: str,
        *,
        host: str | None = None,
        port: int | None = None,
        db_name: str | None = None,
        fetch_all: bool | None = None,
        user: str | None = None,
        password: str | None = None,
        timeout: int | None = None,
        connector: Connector | None = None,
        settings: ProviderSettings | None = None,
    ) -> None:
        if settings is None:
            overrides = {
                "host": host,
                "port": port,
                "db_name": db_name,
                "fetch_all": fetch_all,
                "user": user,
                "password": password,
                "timeout": timeout,
            }
            settings = ProviderSettings(name=name, **{k: v for k, v in overrides.items() if v is not None})
        self._settings = settings
        self._connector: Connector = connector or connect_rethink
        self._ready = ReadinessSignal()
        self._init_task: asyncio.Task | None = None
        self._server: DatabaseServer | None = None
        self._gateway: WriteThroughGateway | None = None
        self._closed = False

    @classmethod
    def from_env(cls, name: str, *, env_file: str | None = "local.env", **overrides: Any) -> "RethinkProvider":
        """Build a provider from ENMAP_RETHINK_* variables (optionally loaded from `env_file`)."""
        if env_file:
            load_dotenv(env_file)
        connector = overrides.pop("connector", None)
        return cls(name, settings=get_settings(name, **overrides), connector=connector)

    # --- properties -------------------------------------------------------------------
    @property
    def settings(self) -> ProviderSettings:
        return self._settings

    @property
    def name(self) -> str:
        return self._settings.name

    @property
    def features(self) -> ProviderFeatures:
        return ProviderFeatures()

    @property
    def ready(self) -> ReadinessSignal:
        return self._ready

    @property
    def closed(self) -> bool:
        return self._closed

    # --- lifecycle --------------------------------------------------------------------
    async def init(self, target: WritableMap) -> ReadinessSignal:
        """
        Connect, ensure the database and table exist, then hydrate `target`.

        Only the first call does any work; later calls wait for it and return the
        same readiness signal. If connecting fails the error propagates and the
        signal stays unresolved.
        """
        self._check_open()
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize(target))
        try:
            await asyncio.shield(self._init_task)
        except asyncio.CancelledError:
            # close() cancelled initialization; our own caller was not cancelled
            if self._closed and self._init_task.cancelled():
                raise ClosedProviderError("provider was closed during init", {"name": self._settings.name})
            raise
        return self._ready

    async def _initialize(self, target: WritableMap) -> None:
        s = self._settings
        server = await self._connector(s)
        if self._closed:
            await server.close()
            raise ClosedProviderError("provider was closed during init", {"name": s.name})
        self._server = server
        store = await open_table(server, s)
        count = await hydrate(store, target, fetch_all=s.fetch_all)
        if self._closed:
            raise ClosedProviderError("provider was closed during init", {"name": s.name})
        self._gateway = WriteThroughGateway(store, target, loop=asyncio.get_running_loop())
        logger.debug("RETHINK INIT: %s ready (%d rows hydrated)", s.table_name, count)
        self._ready.resolve()

    async def close(self) -> None:
        """
        Flush pending background writes and release the connection. Safe to call twice.

        An init() still in flight is cancelled; its readiness signal never resolves.
        """
        if self._closed:
            return
        self._closed = True
        task = self._init_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if self._gateway is not None:
            await self._gateway.drain()
        if self._server is not None:
            await self._server.close()
            self._server = None
        logger.debug("RETHINK CLOSE: %s closed", self._settings.table_name)

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedProviderError("provider is closed", {"name": self._settings.name})

    def _require_gateway(self) -> WriteThroughGateway:
        self._check_open()
        if self._gateway is None:
            raise ProviderNotReadyError("init() has not completed", {"name": self._settings.name})
        return self._gateway

    # --- write-through ----------------------------------------------------------------
    def set(self, key: Any, value: Any) -> Submitted:
        return self._require_gateway().set(key, value)

    async def set_async(self, key: Any, value: Any) -> None:
        await self._require_gateway().set_async(key, value)

    def delete(self, key: Any) -> Submitted:
        return self._require_gateway().delete(key)

    async def delete_async(self, key: Any) -> None:
        await self._require_gateway().delete_async(key)

    async def bulk_delete(self) -> int:
        return await self._require_gateway().bulk_delete()

    async def fetch(self, key: Any) -> Any:
        return await self._require_gateway().fetch(key)

    async def fetch_everything(self) -> int:
        return await self._require_gateway().fetch_everything()

    async def has_async(self, key: Any) -> bool:
        return await self._require_gateway().has_async(key)

    def __repr__(self) -> str:
        s = self._settings
        return f"<RethinkProvider {s.db_name}.{s.table_name} at {s.host}:{s.port}>"
