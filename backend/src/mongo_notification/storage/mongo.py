"""MongoDB storage collaborator built on the pymongo async API."""
from typing import Any, Dict, Optional

import structlog
from bson.errors import BSONError
from pymongo import AsyncMongoClient, CursorType
from pymongo.errors import CollectionInvalid, OperationFailure, PyMongoError

from ..utilities import DEFAULT_DATABASE, TAIL_MAX_AWAIT_MS, AlreadyExists, StorageError

log = structlog.get_logger(__name__)

NAMESPACE_EXISTS = 48
CAPPED_POSITION_LOST = 136


class MongoTailCursor:
    '''
    Tailable await-data cursor over a capped collection.

    The server cursor always starts at the oldest retained document; documents
    up to and including *after* are skipped so the caller only sees what was
    appended after it. If *after* has been evicted, everything retained was
    appended after it and nothing is skipped.
    '''

    def __init__(self, collection, after: Any = None):
        self._cursor = collection.find({}, cursor_type=CursorType.TAILABLE_AWAIT).max_await_time_ms(
            TAIL_MAX_AWAIT_MS
        )
        self._collection = collection
        self._name = collection.name
        self._after = after
        self._seeking = after is not None
        self._anchor_checked = False
        self._lost = False

    @property
    def alive(self) -> bool:
        return not self._lost and self._cursor.alive

    async def _check_anchor(self):
        self._anchor_checked = True
        try:
            anchor = await self._collection.find_one({"_id": self._after}, projection={"_id": 1})
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc
        if anchor is None:
            log.info("tail_anchor_evicted", collection=self._name)
            self._seeking = False

    async def next(self) -> Optional[Dict[str, Any]]:
        if self._seeking and not self._anchor_checked:
            await self._check_anchor()

        while True:
            try:
                document = await self._cursor.next()
            except StopAsyncIteration:
                self._seeking = False
                return None
            except OperationFailure as exc:
                if exc.code == CAPPED_POSITION_LOST:
                    log.warning("tail_position_lost", collection=self._name)
                    self._lost = True
                    return None
                raise StorageError(str(exc)) from exc
            except (PyMongoError, BSONError) as exc:
                raise StorageError(str(exc)) from exc

            if self._seeking:
                if document.get("_id") == self._after:
                    self._seeking = False
                continue
            return document

    async def close(self) -> None:
        try:
            await self._cursor.close()
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc


class MongoCollection:
    def __init__(self, collection):
        self._collection = collection
        self.name = collection.name

    async def insert_one(self, document: Dict[str, Any]) -> Any:
        try:
            result = await self._collection.insert_one(document)
        except (PyMongoError, BSONError) as exc:
            raise StorageError(str(exc)) from exc
        return result.inserted_id

    async def last_id(self) -> Any:
        try:
            newest = await self._collection.find_one({}, projection={"_id": 1}, sort=[("$natural", -1)])
        except (PyMongoError, BSONError) as exc:
            raise StorageError(str(exc)) from exc
        return None if newest is None else newest["_id"]

    def tail(self, after: Any = None) -> MongoTailCursor:
        return MongoTailCursor(self._collection, after)


class MongoDatabase:
    ''' One client connection bound to the database named in the url.'''

    def __init__(self, client: AsyncMongoClient):
        self.client = client
        self.db = client.get_default_database(DEFAULT_DATABASE)

    async def create_collection(self, name: str, *, capped: bool, size: int) -> MongoCollection:
        try:
            collection = await self.db.create_collection(name, capped=capped, size=size)
        except CollectionInvalid as exc:
            raise AlreadyExists(name) from exc
        except OperationFailure as exc:
            if exc.code == NAMESPACE_EXISTS:
                raise AlreadyExists(name) from exc
            raise StorageError(str(exc)) from exc
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc
        return MongoCollection(collection)

    async def collection(self, name: str) -> MongoCollection:
        return MongoCollection(self.db.get_collection(name))

    async def close(self) -> None:
        try:
            await self.client.close()
        except PyMongoError as exc:
            raise StorageError(str(exc)) from exc


async def connect(url: str) -> MongoDatabase:
    try:
        client = AsyncMongoClient(url)
    except PyMongoError as exc:
        raise StorageError(str(exc)) from exc
    database = MongoDatabase(client)
    log.debug("mongo_client_created", database=database.db.name)
    return database
