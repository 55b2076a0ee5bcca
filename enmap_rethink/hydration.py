from __future__ import annotations

import logging
from typing import Any

from .interfaces import TableStore, WritableMap
from .records import RowRecord

logger = logging.getLogger(__name__)


async def load_rows(store: TableStore) -> list[tuple[Any, Any]]:
    """
    Read and decode the whole table.

    Every row is decoded before anything is returned, so a single bad row
    raises DecodeError without yielding a partial result.
    """
    docs = await store.read_all()
    return [(rec.id, rec.decoded()) for rec in map(RowRecord.from_row_doc, docs)]


async def hydrate(store: TableStore, target: WritableMap, *, fetch_all: bool = True) -> int:
    """
    Populate `target` from the table.

    With fetch_all=False nothing is read; keys are filled in later by fetch().
    Returns the number of entries inserted.
    """
    table = f"{getattr(store, 'db_name', '?')}.{getattr(store, 'table_name', '?')}"
    if not fetch_all:
        logger.debug("RETHINK HYDRATE: lazy mode, deferring load of %s", table)
        return 0

    entries = await load_rows(store)
    for key, value in entries:
        target[key] = value
    logger.info("RETHINK HYDRATE: loaded %d rows from %s", len(entries), table)
    return len(entries)
