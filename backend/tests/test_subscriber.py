import asyncio

import pytest
import pytest_asyncio

from conftest import wait_until
from mongo_notification.models import Subscriber
from mongo_notification.utilities import StorageError, TailError


@pytest_asyncio.fixture
async def collection(server):
    database = await server.connect("mongodb://fake/db")
    return await database.create_collection("orders", capped=True, size=1024)


@pytest.mark.asyncio
async def test_delivers_messages_appended_after_attach(collection):
    await collection.insert_one({"event": "old", "data": 0})
    received = []
    subscriber = Subscriber(collection, lambda event, data: received.append((event, data)))
    await subscriber.start()

    await collection.insert_one({"event": "order", "data": 1})
    await collection.insert_one({"event": "order", "data": 2})
    await collection.insert_one({"event": "EOT", "data": {}})
    await wait_until(lambda: len(received) == 3)

    assert received == [("order", 1), ("order", 2), ("EOT", {})]
    await subscriber.stop()


@pytest.mark.asyncio
async def test_stop_interrupts_waiting_tail(collection):
    subscriber = Subscriber(collection, lambda event, data: None)
    await subscriber.start()
    await asyncio.sleep(0.05)

    await asyncio.wait_for(subscriber.stop(), timeout=1)

    assert subscriber.tail_task.done()
    assert subscriber.connected is False
    assert subscriber.cursor is None
    assert collection.closed_cursors == 1


@pytest.mark.asyncio
async def test_stop_twice(collection):
    subscriber = Subscriber(collection, lambda event, data: None)
    await subscriber.start()

    await subscriber.stop()
    await subscriber.stop()

    assert collection.closed_cursors == 1


@pytest.mark.asyncio
async def test_dead_cursor_is_reopened(collection):
    collection.kill_empty_cursors = True
    received = []
    subscriber = Subscriber(collection, lambda event, data: received.append(event), retry_interval=0.01)
    await subscriber.start()
    await asyncio.sleep(0.05)

    await collection.insert_one({"event": "first", "data": None})
    await wait_until(lambda: received == ["first"])

    assert collection.opened_cursors > 1
    await subscriber.stop()


@pytest.mark.asyncio
async def test_tail_failure_is_reported(collection):
    collection.tail_error = StorageError("connection reset")
    errors = []
    subscriber = Subscriber(collection, lambda event, data: None, on_error=errors.append)
    await subscriber.start()

    await wait_until(lambda: subscriber.tail_task.done())

    assert len(errors) == 1
    assert isinstance(errors[0], TailError)
    assert subscriber.connected is False
    await subscriber.stop()


@pytest.mark.asyncio
async def test_skips_documents_that_are_not_messages(collection):
    received = []
    subscriber = Subscriber(collection, lambda event, data: received.append(event))
    await subscriber.start()

    await collection.insert_one({"unrelated": True})
    await collection.insert_one({"event": "order", "data": 1})
    await wait_until(lambda: received == ["order"])

    assert subscriber.messages_received == 1
    await subscriber.stop()


@pytest.mark.asyncio
async def test_keeps_waiting_through_empty_await_windows(collection):
    collection.await_timeout = 0.01
    received = []
    subscriber = Subscriber(collection, lambda event, data: received.append(data))
    await subscriber.start()
    await asyncio.sleep(0.05)

    await collection.insert_one({"event": "order", "data": 1})
    await wait_until(lambda: received == [1])

    assert subscriber.connected
    assert collection.opened_cursors == 1
    await subscriber.stop()
