import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from transport import WebSocketTransport


async def drain(times=5):
    for _ in range(times):
        await asyncio.sleep(0)


def test_deliver_to_unattached_connection_is_dropped():
    assert WebSocketTransport().deliver("ghost", "ping", None) is False


@pytest.mark.asyncio
async def test_frames_are_written_in_order():
    websocket = MagicMock()
    websocket.send_text = AsyncMock()
    transport = WebSocketTransport()
    transport.attach("c1", websocket)

    assert transport.deliver("c1", "first", {"n": 1}) is True
    assert transport.deliver("c1", "second", {"n": 2}) is True
    await drain()

    sent = [json.loads(call.args[0]) for call in websocket.send_text.await_args_list]
    assert sent == [
        {"event": "first", "data": {"n": 1}},
        {"event": "second", "data": {"n": 2}},
    ]
    await transport.detach("c1")


@pytest.mark.asyncio
async def test_full_outbox_drops_new_frames():
    websocket = MagicMock()
    websocket.send_text = AsyncMock()
    transport = WebSocketTransport(max_queue_size=1)
    transport.attach("c1", websocket)

    # The writer has not run yet, so the first frame still occupies the queue
    assert transport.deliver("c1", "kept", None) is True
    assert transport.deliver("c1", "dropped", None) is False

    await transport.detach("c1")


@pytest.mark.asyncio
async def test_detach_stops_delivery():
    websocket = MagicMock()
    websocket.send_text = AsyncMock()
    transport = WebSocketTransport()
    writer = transport.attach("c1", websocket)

    await transport.detach("c1")

    assert writer.cancelled()
    assert not transport.is_attached("c1")
    assert transport.deliver("c1", "late", None) is False


@pytest.mark.asyncio
async def test_write_failure_detaches_outbox():
    websocket = MagicMock()
    websocket.send_text = AsyncMock(side_effect=RuntimeError("closed"))
    transport = WebSocketTransport()
    writer = transport.attach("c1", websocket)

    transport.deliver("c1", "ping", None)
    await drain()

    assert writer.done()
    assert not transport.is_attached("c1")
    assert transport.deliver("c1", "ping", None) is False
    await transport.detach("c1")
