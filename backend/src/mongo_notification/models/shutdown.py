import asyncio
from typing import Callable, List, Optional, Set

import structlog

from ..schemas import ChannelState
from ..utilities import ShutdownError

log = structlog.get_logger(__name__)


class ShutdownCoordinator:
    ''' Releases a channel's tail, cursor and connection exactly once.'''

    def __init__(self, channel):
        self.channel = channel
        self._release_task: Optional[asyncio.Future] = None
        self._closers: Set[asyncio.Future] = set()

    async def close(self, callback: Optional[Callable[[], None]] = None):
        """
        Close the channel; every caller waits for the same release.

        Release failures are logged and reported on the channel's error
        event, never raised, and *callback* runs once per call either way.
        """
        closer = asyncio.current_task()
        if closer is not None:
            self._closers.add(closer)
        if self._release_task is None:
            self._release_task = asyncio.ensure_future(self._release())
        # a cancelled closer must not abort the release other callers wait on
        await asyncio.shield(self._release_task)
        if callback is not None:
            try:
                callback()
            except Exception:
                log.exception("close_callback_failed", topic=self.channel.topic)

    async def _release(self):
        channel = self.channel
        channel.state = ChannelState.CLOSING
        failures: List[ShutdownError] = []

        # pending coroutine listeners end with the channel, except those closing it
        for task in list(channel._listener_tasks):
            if not task.done() and task not in self._closers:
                task.cancel()

        if channel.subscriber is not None:
            try:
                await channel.subscriber.stop()
            except Exception as exc:
                failures.append(ShutdownError(f"Could not stop tail on {channel.topic!r}: {exc}"))

        if channel.database is not None:
            try:
                await channel.database.close()
            except Exception as exc:
                failures.append(ShutdownError(f"Could not close connection for {channel.topic!r}: {exc}"))

        channel.state = ChannelState.CLOSED
        log.info("channel_closed", topic=channel.topic)

        for failure in failures:
            channel.report_error(failure)
