import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from handlers import dispatch_frame
from logging_config import get_logger

logger = get_logger(__name__)

socket_router = APIRouter(tags=["socket"])


@socket_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Relay socket.

    Frames are JSON text, ``{"event": name, "data": payload}`` both ways. The
    client gets a ``connected`` event with its connection id, then drives room
    membership with ``joinRoom`` / ``leaveRoom`` / ``register`` and publishes
    with ``message``, ``privateMessage``, ``broadcast_comment_new`` and
    ``broadcast_players_updated``.

    Room and private messages arrive as ``{room|to, message, from}`` rather
    than the bare message, so receivers can tell who sent them.
    """
    relay = websocket.app.state.relay
    transport = websocket.app.state.transport

    await websocket.accept()
    connection_id = uuid.uuid4().hex
    remote_address = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else None

    transport.attach(connection_id, websocket)
    relay.connect(connection_id, remote_address)
    relay.send_to(connection_id, "connected", {"connectionId": connection_id})

    reason = "server shutting down"
    message_count = 0
    try:
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect as e:
                reason = f"client disconnect (code {e.code})"
                break
            message_count += 1
            logger.debug(f"Received frame #{message_count} from connection {connection_id}")
            dispatch_frame(relay, connection_id, data)
    except Exception as e:
        reason = "transport error"
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        # Leave every room before the outbox goes away
        relay.disconnect(connection_id, reason)
        await transport.detach(connection_id)
