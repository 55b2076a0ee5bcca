from __future__ import annotations

from typing import Any, Protocol


class WritableMap(Protocol):
    """
    The caller's in-memory map. The provider only ever assigns into it; a plain dict qualifies.
    """

    def __setitem__(self, key: Any, value: Any) -> None:
        ...


class TableStore(Protocol):
    """
    Minimal DB-friendly interface: rows of {"id": key, "data": payload} in one table.
    """

    async def upsert(self, key: Any, payload: Any) -> None:
        """Insert the row or replace the row with the same id."""
        ...

    async def get(self, key: Any) -> dict[str, Any] | None:
        """Return the row document for `key`, or None."""
        ...

    async def delete(self, key: Any) -> None:
        """Delete the row for `key`; absent keys are not an error."""
        ...

    async def delete_all(self) -> int:
        """Delete every row and return how many were removed."""
        ...

    async def read_all(self) -> list[dict[str, Any]]:
        """Return every row document of the table."""
        ...

    async def exists(self, key: Any) -> bool:
        ...


class DatabaseServer(Protocol):
    """
    A live connection to a database server hosting many tables.

    db_create and table_create raise AlreadyExistsError when the target exists.
    """

    async def db_list(self) -> list[str]:
        ...

    async def db_create(self, db_name: str) -> None:
        ...

    async def table_list(self, db_name: str) -> list[str]:
        ...

    async def table_create(self, db_name: str, table_name: str) -> None:
        ...

    def table(self, db_name: str, table_name: str) -> TableStore:
        ...

    async def close(self) -> None:
        ...
