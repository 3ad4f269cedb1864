"""In-memory storage collaborator shared by the tests.

FakeServer stands in for a MongoDB deployment: every ``connect`` call returns
a new FakeDatabase connection onto the same set of capped collections, and
counts creations and fetches so provisioning can be asserted on.
"""
import asyncio
import itertools
from typing import Any, Dict, List, Optional

import pytest

from mongo_notification.utilities import AlreadyExists, StorageError


class FakeTailCursor:
    def __init__(self, collection: "FakeCollection", after: Any = None):
        self.collection = collection
        self.position = collection.position_after(after)
        self.closed = False
        # MongoDB kills tailable cursors opened on an empty capped collection
        self._dead = collection.kill_empty_cursors and not collection.documents

    @property
    def alive(self) -> bool:
        return not self.closed and not self._dead

    async def next(self) -> Optional[Dict[str, Any]]:
        if self.collection.tail_error is not None:
            raise self.collection.tail_error
        async with self.collection.changed:
            waiting = self.collection.changed.wait_for(lambda: self.position < len(self.collection.documents))
            if self.collection.await_timeout is None:
                await waiting
            else:
                try:
                    await asyncio.wait_for(waiting, self.collection.await_timeout)
                except asyncio.TimeoutError:
                    # await window passed with no data
                    return None
        document = self.collection.documents[self.position]
        self.position += 1
        return dict(document)

    async def close(self) -> None:
        self.closed = True
        self.collection.closed_cursors += 1


class FakeCollection:
    def __init__(self, name: str, size: int):
        self.name = name
        self.size = size
        self.documents: List[Dict[str, Any]] = []
        self.changed = asyncio.Condition()
        self.ids = itertools.count(1)
        self.kill_empty_cursors = False
        self.await_timeout: Optional[float] = None
        self.insert_error: Optional[StorageError] = None
        self.tail_error: Optional[StorageError] = None
        self.opened_cursors = 0
        self.closed_cursors = 0

    def position_after(self, after: Any) -> int:
        if after is None:
            return 0
        for index, document in enumerate(self.documents):
            if document["_id"] == after:
                return index + 1
        return len(self.documents)

    async def insert_one(self, document: Dict[str, Any]) -> Any:
        if self.insert_error is not None:
            raise self.insert_error
        document = dict(document, _id=next(self.ids))
        async with self.changed:
            self.documents.append(document)
            self.changed.notify_all()
        return document["_id"]

    async def last_id(self) -> Any:
        return self.documents[-1]["_id"] if self.documents else None

    def tail(self, after: Any = None) -> FakeTailCursor:
        self.opened_cursors += 1
        return FakeTailCursor(self, after)


class FakeServer:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}
        self.databases: List["FakeDatabase"] = []
        self.create_calls: List[Dict[str, Any]] = []
        self.created: List[str] = []
        self.fetched: List[str] = []
        self.create_error: Optional[StorageError] = None
        self.connect_error: Optional[StorageError] = None

    async def connect(self, url: str) -> "FakeDatabase":
        if self.connect_error is not None:
            raise self.connect_error
        database = FakeDatabase(self, url)
        self.databases.append(database)
        return database


class FakeDatabase:
    def __init__(self, server: FakeServer, url: str):
        self.server = server
        self.url = url
        self.closed = False
        self.close_error: Optional[StorageError] = None

    async def create_collection(self, name: str, *, capped: bool, size: int) -> FakeCollection:
        self.server.create_calls.append({"name": name, "capped": capped, "size": size})
        if self.server.create_error is not None:
            raise self.server.create_error
        # let concurrent creators interleave like separate processes would
        await asyncio.sleep(0)
        if name in self.server.collections:
            raise AlreadyExists(name)
        collection = FakeCollection(name, size)
        self.server.collections[name] = collection
        self.server.created.append(name)
        return collection

    async def collection(self, name: str) -> FakeCollection:
        self.server.fetched.append(name)
        return self.server.collections.setdefault(name, FakeCollection(name, 0))

    async def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


async def wait_until(predicate, timeout: float = 2.0):
    """Yield to the loop until *predicate* holds."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)
