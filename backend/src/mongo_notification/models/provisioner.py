import structlog

from ..storage import Collection, Database
from ..utilities import AlreadyExists, ProvisioningError, StorageError

log = structlog.get_logger(__name__)


async def ensure_collection(database: Database, topic: str, size: int) -> Collection:
    """
    Create the capped collection for *topic*, or reuse it if it exists.

    Several processes may race to create the same topic on first use; the
    loser gets AlreadyExists and fetches the existing collection. Its size is
    whatever the winner created it with and is never changed here.
    """
    try:
        collection = await database.create_collection(topic, capped=True, size=size)
    except AlreadyExists:
        log.debug("collection_exists", topic=topic)
        return await database.collection(topic)
    except StorageError as exc:
        raise ProvisioningError(f"Could not create collection {topic!r}: {exc}") from exc

    log.info("collection_created", topic=topic, size=size)
    return collection
