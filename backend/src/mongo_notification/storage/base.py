"""Storage collaborator contract.

A channel only talks to storage through these protocols, so the MongoDB
adapter in ``storage.mongo`` can be swapped for an in-memory double in tests.
Implementations raise ``StorageError`` for failures and the tagged
``AlreadyExists`` when a capped collection name is already taken.
"""
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol


class TailCursor(Protocol):
    @property
    def alive(self) -> bool:
        """False once the cursor can never return data again and must be reopened."""

    async def next(self) -> Optional[Dict[str, Any]]:
        """Return the next appended document, or None when the await window passed with no data."""

    async def close(self) -> None:
        ...


class Collection(Protocol):
    name: str

    async def insert_one(self, document: Dict[str, Any]) -> Any:
        """Append *document* and return its id once the write is acknowledged."""

    async def last_id(self) -> Any:
        """Id of the newest retained document, None for an empty collection."""

    def tail(self, after: Any = None) -> TailCursor:
        """Open a tailable await-data cursor yielding documents appended after *after*."""


class Database(Protocol):
    async def create_collection(self, name: str, *, capped: bool, size: int) -> Collection:
        ...

    async def collection(self, name: str) -> Collection:
        ...

    async def close(self) -> None:
        ...


Connect = Callable[[str], Awaitable[Database]]
