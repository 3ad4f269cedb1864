from typing import Any

import structlog

from ..schemas import PublishAck
from ..storage import Collection
from ..utilities import PublishError, StorageError, make_message

log = structlog.get_logger(__name__)


class Publisher:
    ''' Appends messages to one capped collection.'''

    def __init__(self, collection: Collection):
        self.collection = collection
        self.messages_published = 0

    async def publish(self, event: str, data: Any = None) -> PublishAck:
        # a fresh dict per call, drivers add _id to the document they are given
        document = make_message(event, data)
        try:
            inserted_id = await self.collection.insert_one(document)
        except StorageError as exc:
            log.warning("publish_failed", topic=self.collection.name, event=event, error=str(exc))
            raise PublishError(f"Could not publish {event!r} to {self.collection.name!r}: {exc}") from exc

        self.messages_published += 1
        return PublishAck(topic=self.collection.name, event=event, inserted_id=inserted_id)
