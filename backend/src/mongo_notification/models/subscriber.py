import asyncio
from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError

from ..schemas import Message
from ..storage import Collection, TailCursor
from ..utilities import TAIL_RETRY_INTERVAL, StorageError, TailError

log = structlog.get_logger(__name__)


class Subscriber:
    ''' Live tail over one capped collection.'''

    def __init__(
        self,
        collection: Collection,
        on_message: Callable[[str, Any], None],
        on_error: Optional[Callable[[TailError], None]] = None,
        retry_interval: float = TAIL_RETRY_INTERVAL,
    ):
        self.collection = collection
        self.on_message = on_message
        self.on_error = on_error
        self.retry_interval = retry_interval

        # background task that waits on the cursor and hands messages to on_message
        self.tail_task: Optional[asyncio.Task] = None
        self.cursor: Optional[TailCursor] = None
        self.connected = False
        self.last_id: Any = None
        self.messages_received = 0

    async def start(self):
        """
        Attach at the current end of the collection and start tailing.

        Anything already retained is skipped; only documents appended after
        the newest one seen here are delivered.
        """
        try:
            self.last_id = await self.collection.last_id()
        except StorageError as exc:
            raise TailError(f"Could not attach to {self.collection.name!r}: {exc}") from exc

        self.cursor = self.collection.tail(after=self.last_id)
        self.connected = True
        self.tail_task = asyncio.create_task(self._tail_loop(), name=f"tail:{self.collection.name}")
        log.debug("tail_started", topic=self.collection.name)

    async def _reopen(self):
        await self.cursor.close()
        await asyncio.sleep(self.retry_interval)
        self.cursor = self.collection.tail(after=self.last_id)

    async def _tail_loop(self):
        try:
            while self.connected:
                if not self.cursor.alive:
                    # empty capped collections and lost positions kill the cursor
                    await self._reopen()
                    continue

                document = await self.cursor.next()
                if document is None:
                    continue

                self.last_id = document.get("_id")
                self._deliver(document)
        except asyncio.CancelledError:
            # Graceful cancellation
            pass
        except StorageError as exc:
            log.error("tail_failed", topic=self.collection.name, error=str(exc))
            if self.on_error is not None:
                self.on_error(TailError(f"Tail on {self.collection.name!r} failed: {exc}"))
        finally:
            self.connected = False

    def _deliver(self, document):
        try:
            message = Message.model_validate(document)
        except ValidationError:
            log.warning("tail_skipped_document", topic=self.collection.name, id=str(document.get("_id")))
            return

        self.messages_received += 1
        self.on_message(message.event, message.data)

    # graceful cleanup
    async def stop(self):
        self.connected = False
        if self.tail_task is not None:
            self.tail_task.cancel()
            try:
                await self.tail_task
            except asyncio.CancelledError:
                pass

        cursor, self.cursor = self.cursor, None
        if cursor is not None:
            await cursor.close()
            log.debug("tail_stopped", topic=self.collection.name)
