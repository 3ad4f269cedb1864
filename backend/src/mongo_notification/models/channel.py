"""
Notification channel: the handle returned by open_channel.

A channel publishes to one topic's capped collection and, unless it is
write-only, tails that collection and re-emits every message to the
listeners registered with ``on``. Because ``emit`` goes through the shared
collection, a channel hears its own messages as well as everybody else's.
"""
import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

import structlog

from ..schemas import ChannelOptions, ChannelState, PublishAck
from ..storage import Collection, Connect, Database
from ..storage import mongo
from ..utilities import (
    ERROR_EVENT,
    TAIL_RETRY_INTERVAL,
    ChannelClosedError,
    NotificationError,
    ProvisioningError,
    StorageError,
)
from .provisioner import ensure_collection
from .publisher import Publisher
from .shutdown import ShutdownCoordinator
from .subscriber import Subscriber

log = structlog.get_logger(__name__)

Listener = Callable[[Any], Any]


class NotificationChannel:
    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        *,
        connect: Optional[Connect] = None,
        retry_interval: float = TAIL_RETRY_INTERVAL,
        **kwargs: Any,
    ):
        self.state = ChannelState.CREATED
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._listener_tasks: Set[asyncio.Future] = set()

        self.database: Optional[Database] = None
        self.collection: Optional[Collection] = None
        self.publisher: Optional[Publisher] = None
        self.subscriber: Optional[Subscriber] = None

        self.state = ChannelState.VALIDATING
        self.options = ChannelOptions.from_options(options, **kwargs)
        self._connect = connect or mongo.connect
        self._retry_interval = retry_interval
        self._shutdown = ShutdownCoordinator(self)

    @property
    def topic(self) -> str:
        return self.options.topic

    @property
    def write_only(self) -> bool:
        return self.options.write_only

    @property
    def closed(self) -> bool:
        return self.state in (ChannelState.CLOSING, ChannelState.CLOSED)

    @property
    def event_stream(self) -> Optional[Subscriber]:
        """The live tail, None for write-only channels."""
        return self.subscriber

    async def open(self) -> "NotificationChannel":
        if self.state is not ChannelState.VALIDATING:
            raise RuntimeError(f"Channel {self.topic!r} is already {self.state.value}.")
        self.state = ChannelState.PROVISIONING

        try:
            self.database = await self._connect(self.options.url)
        except StorageError as exc:
            self.state = ChannelState.CLOSED
            raise ProvisioningError(f"Could not connect for topic {self.topic!r}: {exc}") from exc

        try:
            self.collection = await ensure_collection(self.database, self.topic, self.options.collection_size)
            self.publisher = Publisher(self.collection)
            if not self.write_only:
                subscriber = Subscriber(
                    self.collection,
                    self._dispatch,
                    on_error=self.report_error,
                    retry_interval=self._retry_interval,
                )
                await subscriber.start()
                self.subscriber = subscriber
        except BaseException:
            await self._abort_open()
            raise

        self.state = ChannelState.ACTIVE
        log.info("channel_opened", topic=self.topic, write_only=self.write_only)
        return self

    async def _abort_open(self):
        database, self.database = self.database, None
        self.state = ChannelState.CLOSED
        try:
            await database.close()
        except StorageError as exc:
            log.warning("connection_close_failed", topic=self.topic, error=str(exc))

    # -------------- listeners --------------

    def on(self, event: str, listener: Listener) -> "NotificationChannel":
        self._listeners[event].append(listener)
        return self

    def once(self, event: str, listener: Listener) -> "NotificationChannel":
        def _once(data):
            self.off(event, _once)
            return listener(data)

        _once.listener = listener
        return self.on(event, _once)

    def off(self, event: str, listener: Listener) -> "NotificationChannel":
        listeners = self._listeners.get(event, [])
        for registered in listeners:
            if registered == listener or getattr(registered, "listener", None) == listener:
                listeners.remove(registered)
                break
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _dispatch(self, event: str, data: Any):
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(data)
            except Exception:
                # keep the tail alive: log and continue
                log.exception("listener_failed", topic=self.topic, event=event)
                continue
            if inspect.isawaitable(result):
                # coroutine listeners run beside the tail so they may close the channel
                task = asyncio.ensure_future(result)
                self._listener_tasks.add(task)
                task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Future):
        self._listener_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("listener_failed", topic=self.topic, error=str(task.exception()))

    def report_error(self, error: NotificationError):
        if self.listener_count(ERROR_EVENT):
            self._dispatch(ERROR_EVENT, error)
        else:
            log.error("channel_error", topic=self.topic, error=str(error), kind=type(error).__name__)

    # -------------- publish / close --------------

    async def emit(self, event: str, data: Any = None) -> PublishAck:
        """Append ``{event, data}`` to the topic; resolves once the write is acknowledged."""
        if self.state is not ChannelState.ACTIVE:
            raise ChannelClosedError(f"Channel {self.topic!r} is {self.state.value}.")
        return await self.publisher.publish(event, data)

    async def close(self, callback: Optional[Callable[[], None]] = None):
        await self._shutdown.close(callback)

    async def __aenter__(self) -> "NotificationChannel":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()


async def open_channel(
    options: Optional[Mapping[str, Any]] = None,
    *,
    connect: Optional[Connect] = None,
    retry_interval: float = TAIL_RETRY_INTERVAL,
    **kwargs: Any,
) -> NotificationChannel:
    """
    Open a channel on ``options["topic"]`` at ``options["url"]``.

    Options may be given as a mapping, as keyword arguments, or both;
    ``collectionSize``/``collection_size`` and ``writeOnly``/``write_only``
    are optional. Missing url or topic raises ConfigError before any I/O.
    ``connect`` replaces the MongoDB connection factory.
    """
    channel = NotificationChannel(options, connect=connect, retry_interval=retry_interval, **kwargs)
    return await channel.open()
