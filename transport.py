import asyncio
import json
from typing import Any, Dict

from fastapi import WebSocket

from constants import OUTBOX_MAX_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class WebSocketTransport:
    """Outbound side of the relay's WebSocket connections.

    ``deliver`` never awaits: it puts the frame on the connection's bounded
    outbox and a per-connection writer task pushes it to the socket. A frame for
    a detached connection or a full outbox is dropped.
    """

    def __init__(self, max_queue_size: int = OUTBOX_MAX_SIZE):
        self.max_queue_size = max_queue_size
        self._outboxes: Dict[str, asyncio.Queue] = {}
        self._writers: Dict[str, asyncio.Task] = {}

    def attach(self, connection_id: str, websocket: WebSocket) -> asyncio.Task:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._outboxes[connection_id] = queue
        task = asyncio.create_task(self._write_loop(connection_id, websocket, queue))
        self._writers[connection_id] = task
        logger.debug(f"Attached outbox for connection {connection_id}")
        return task

    async def detach(self, connection_id: str) -> None:
        self._outboxes.pop(connection_id, None)
        task = self._writers.pop(connection_id, None)
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug(f"Detached outbox for connection {connection_id}")

    def deliver(self, connection_id: str, event: str, payload: Any) -> bool:
        queue = self._outboxes.get(connection_id)
        if queue is None:
            logger.debug(f"No outbox for connection {connection_id}, {event} dropped")
            return False
        try:
            queue.put_nowait({"event": event, "data": payload})
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for connection {connection_id}, {event} dropped")
            return False
        return True

    def is_attached(self, connection_id: str) -> bool:
        return connection_id in self._outboxes

    async def _write_loop(self, connection_id: str, websocket: WebSocket, queue: asyncio.Queue) -> None:
        try:
            while True:
                frame = await queue.get()
                await websocket.send_text(json.dumps(frame))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Writer for connection {connection_id} stopped: {e}")
            # Stop accepting frames that can no longer be written
            if self._outboxes.get(connection_id) is queue:
                del self._outboxes[connection_id]
