import json
from typing import Any, Callable, Dict, Tuple, Type

from pydantic import BaseModel, ValidationError

from logging_config import get_logger
from relay import GAME_COMMENT_NEW, GAME_PLAYERS_UPDATED, ChannelRelay
from room_names import game_room_name
from schemas.events import (
    CommentNewEvent,
    InboundFrame,
    MessageEvent,
    PlayersUpdatedEvent,
    PrivateMessageEvent,
    RoomName,
    UserIdentifier,
)

logger = get_logger(__name__)

Handler = Callable[[ChannelRelay, str, Any], None]

# event name -> (payload model, handler)
EVENT_HANDLERS: Dict[str, Tuple[Type[BaseModel], Handler]] = {}


def on(event: str, model: Type[BaseModel]):
    def decorator(func: Handler) -> Handler:
        EVENT_HANDLERS[event] = (model, func)
        return func
    return decorator


@on("joinRoom", RoomName)
def join_room(relay: ChannelRelay, connection_id: str, room: RoomName) -> None:
    relay.join(connection_id, room.root)


@on("leaveRoom", RoomName)
def leave_room(relay: ChannelRelay, connection_id: str, room: RoomName) -> None:
    relay.leave(connection_id, room.root)


@on("register", UserIdentifier)
def register(relay: ChannelRelay, connection_id: str, user_id: UserIdentifier) -> None:
    relay.register(connection_id, user_id.root)


@on("message", MessageEvent)
def room_message(relay: ChannelRelay, connection_id: str, event: MessageEvent) -> None:
    logger.debug(f"Message from {connection_id} in room {event.room}")
    relay.broadcast(event.room, "message", {"room": event.room, "message": event.message, "from": connection_id})


@on("privateMessage", PrivateMessageEvent)
def private_message(relay: ChannelRelay, connection_id: str, event: PrivateMessageEvent) -> None:
    logger.debug(f"Private message from {connection_id} to {event.to}")
    relay.broadcast(event.to, "privateMessage", {"to": event.to, "message": event.message, "from": connection_id})


@on("broadcast_comment_new", CommentNewEvent)
def comment_new(relay: ChannelRelay, connection_id: str, event: CommentNewEvent) -> None:
    relay.relay_from(connection_id, game_room_name(event.gameId), GAME_COMMENT_NEW, event.comment)


@on("broadcast_players_updated", PlayersUpdatedEvent)
def players_updated(relay: ChannelRelay, connection_id: str, event: PlayersUpdatedEvent) -> None:
    relay.broadcast(game_room_name(event.gameId), GAME_PLAYERS_UPDATED, {"gameId": event.gameId})


def handle_event(relay: ChannelRelay, connection_id: str, event: str, data: Any) -> bool:
    """Validate and apply one client event. Returns False when it was ignored."""
    entry = EVENT_HANDLERS.get(event)
    if entry is None:
        logger.warning(f"Unknown event '{event}' from connection {connection_id} ignored")
        return False
    model, handler = entry
    try:
        payload = model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid '{event}' payload from connection {connection_id}: {e.error_count()} errors")
        return False
    handler(relay, connection_id, payload)
    return True


def dispatch_frame(relay: ChannelRelay, connection_id: str, raw: str) -> None:
    """Handle one text frame from a socket, then acknowledge it if the client asked."""
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Non-JSON frame from connection {connection_id} ignored")
        return
    try:
        frame = InboundFrame.model_validate(message)
    except ValidationError:
        logger.warning(f"Malformed frame from connection {connection_id} ignored")
        return

    handle_event(relay, connection_id, frame.event, frame.data)

    # Acks carry no outcome, so a rejected relay stays invisible to the sender
    if frame.ack is not None:
        relay.send_to(connection_id, "ack", {"id": frame.ack})
