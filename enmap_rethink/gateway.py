"""
Write-through gateway between the caller's map and a TableStore.

Two write flavours are offered:

- set / delete: fire-and-forget. Validation and encoding happen immediately
  (and raise immediately); the backend call runs as a background task whose
  failure is logged, never raised to the caller.
- set_async / delete_async: awaited. Backend failures propagate.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import functools
import logging
from typing import Any, Coroutine, Union

from .errors import ProviderNotReadyError
from .hydration import hydrate
from .interfaces import TableStore, WritableMap
from .keys import validate_key
from .records import RowRecord

logger = logging.getLogger(__name__)

Submitted = Union[asyncio.Future, concurrent.futures.Future]


class _NotFound:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


class WriteThroughGateway:
    def __init__(
        self,
        store: TableStore,
        target: WritableMap,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._store = store
        self._target = target
        self._loop = loop
        self._pending: set[Submitted] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    # --- fire-and-forget --------------------------------------------------------------
    def set(self, key: Any, value: Any) -> Submitted:
        row = RowRecord.from_entry(validate_key(key), value)
        return self._submit(self._store.upsert(row.id, row.data), "set", row.id)

    def delete(self, key: Any) -> Submitted:
        key = validate_key(key)
        return self._submit(self._store.delete(key), "delete", key)

    def _submit(self, coro: Coroutine[Any, Any, Any], op: str, key: Any) -> Submitted:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        fut: Submitted
        if running is not None:
            fut = running.create_task(coro)
        elif self._loop is not None and self._loop.is_running():
            fut = asyncio.run_coroutine_threadsafe(coro, self._loop)
        else:
            coro.close()
            raise ProviderNotReadyError("no running event loop to submit the write to", {"op": op, "key": key})

        self._pending.add(fut)
        fut.add_done_callback(functools.partial(self._on_done, op, key))
        return fut

    def _on_done(self, op: str, key: Any, fut: Submitted) -> None:
        self._pending.discard(fut)
        if fut.cancelled():
            logger.warning("WRITE THROUGH %s: cancelled for key=%r", op.upper(), key)
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("WRITE THROUGH %s: failed for key=%r", op.upper(), key, exc_info=exc)

    async def drain(self) -> None:
        """Wait for every background write submitted so far."""
        while self._pending:
            waiting = [
                asyncio.wrap_future(f) if isinstance(f, concurrent.futures.Future) else f
                for f in list(self._pending)
            ]
            # failures were already logged by _on_done
            await asyncio.gather(*waiting, return_exceptions=True)
            self._pending.difference_update(f for f in list(self._pending) if f.done())

    # --- awaited ----------------------------------------------------------------------
    async def set_async(self, key: Any, value: Any) -> None:
        row = RowRecord.from_entry(validate_key(key), value)
        await self._store.upsert(row.id, row.data)

    async def delete_async(self, key: Any) -> None:
        await self._store.delete(validate_key(key))

    async def bulk_delete(self) -> int:
        deleted = await self._store.delete_all()
        logger.info("WRITE THROUGH PURGE: deleted %d rows", deleted)
        return deleted

    # --- reads ------------------------------------------------------------------------
    async def fetch(self, key: Any) -> Any:
        """
        Load one key into the map.

        Returns the decoded value, or NOT_FOUND (the map is left alone) when the
        row does not exist.
        """
        doc = await self._store.get(validate_key(key))
        if doc is None:
            return NOT_FOUND
        rec = RowRecord.from_row_doc(doc)
        value = rec.decoded()
        self._target[rec.id] = value
        return value

    async def fetch_everything(self) -> int:
        return await hydrate(self._store, self._target, fetch_all=True)

    async def has_async(self, key: Any) -> bool:
        return await self._store.exists(validate_key(key))
