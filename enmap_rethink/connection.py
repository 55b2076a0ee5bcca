"""
Schema ensure for a provider table.

Databases and tables are created on first use. Several processes may race to
create the same database or table; losing that race is not an error.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from .errors import AlreadyExistsError, BackendConnectionError, ProviderError, SchemaEnsureError
from .interfaces import DatabaseServer, TableStore
from .settings import ProviderSettings

logger = logging.getLogger(__name__)

Connector = Callable[[ProviderSettings], Awaitable[DatabaseServer]]


async def ensure_database(server: DatabaseServer, db_name: str) -> bool:
    """Create `db_name` if absent. Returns True if this call created it."""
    if db_name in await server.db_list():
        return False
    try:
        await server.db_create(db_name)
    except AlreadyExistsError:
        logger.debug("SCHEMA ENSURE: database %s created concurrently", db_name)
        return False
    except BackendConnectionError:
        raise
    except ProviderError as e:
        raise SchemaEnsureError("failed to create database", {"db": db_name}) from e
    logger.info("SCHEMA ENSURE: created database %s", db_name)
    return True


async def ensure_table(server: DatabaseServer, db_name: str, table_name: str) -> bool:
    """Create `table_name` inside `db_name` if absent. Returns True if this call created it."""
    if table_name in await server.table_list(db_name):
        return False
    try:
        await server.table_create(db_name, table_name)
    except AlreadyExistsError:
        logger.debug("SCHEMA ENSURE: table %s.%s created concurrently", db_name, table_name)
        return False
    except BackendConnectionError:
        raise
    except ProviderError as e:
        raise SchemaEnsureError("failed to create table", {"db": db_name, "table": table_name}) from e
    logger.info("SCHEMA ENSURE: initialized new table %s.%s", db_name, table_name)
    return True


async def open_table(server: DatabaseServer, settings: ProviderSettings) -> TableStore:
    # database first, then table
    await ensure_database(server, settings.db_name)
    await ensure_table(server, settings.db_name, settings.table_name)
    return server.table(settings.db_name, settings.table_name)
