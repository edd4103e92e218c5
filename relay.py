from typing import Any, Dict, List, Optional, Protocol, Set

from logging_config import get_logger
from registry import ConnectionRecord, ConnectionRegistry, UserId
from room_names import game_room_name, user_room_name

logger = get_logger(__name__)

GAME_COMMENT_NEW = "game_comment_new"
GAME_COMMENT_EDIT = "game_comment_edit"
GAME_COMMENT_DELETE = "game_comment_delete"
GAME_PLAYERS_UPDATED = "game_players_updated"


class Transport(Protocol):
    def deliver(self, connection_id: str, event: str, payload: Any) -> bool:
        """Queue one frame for a connection without blocking. False if it was dropped."""
        ...


class ChannelRelay:
    """Room membership and fan-out for one relay process.

    Every method runs to completion without awaiting, so within the event loop
    a join, leave, disconnect or broadcast is applied as a single step. The
    channel index and each ConnectionRecord.channels set are always updated
    together.
    """

    def __init__(self, registry: Optional[ConnectionRegistry] = None, transport: Optional[Transport] = None):
        self.registry = registry if registry is not None else ConnectionRegistry()
        self._transport = transport
        # channel name -> connection ids; empty channels are deleted
        self._channels: Dict[str, Set[str]] = {}

    def attach_transport(self, transport: Transport) -> None:
        self._transport = transport
        logger.info("Relay transport attached")

    def is_initialized(self) -> bool:
        return self._transport is not None

    # Connection lifecycle

    def connect(self, connection_id: str, remote_address: Optional[str] = None) -> ConnectionRecord:
        record = self.registry.on_connect(connection_id, remote_address)
        logger.info(f"New client connected {connection_id} from {remote_address}")
        return record

    def register(self, connection_id: str, user_id: UserId) -> bool:
        """Bind a user id to the connection and join its ``user_<id>`` room.

        A second register with another id keeps the earlier ``user_<old>``
        membership; nothing is left automatically.
        """
        if self.registry.on_register(connection_id, user_id) is None:
            return False
        self.join(connection_id, user_room_name(user_id))
        logger.info(f"User {user_id} registered on connection {connection_id}")
        return True

    def disconnect(self, connection_id: str, reason: Optional[str] = None) -> None:
        record = self.registry.on_disconnect(connection_id)
        if record is None:
            return
        logger.debug(f"Closing connection record {record.to_dict()}")
        for channel in record.channels:
            self._discard(channel, connection_id)
        left = len(record.channels)
        record.channels.clear()
        logger.info(f"Client {connection_id} disconnected ({reason or 'unknown reason'}), removed from {left} rooms")

    # Membership

    def join(self, connection_id: str, channel: str) -> bool:
        """Add the connection to a channel. Re-joining is a no-op; returns True if membership changed."""
        if not channel:
            logger.warning(f"Connection {connection_id} tried to join an empty room name")
            return False
        record = self.registry.get(connection_id)
        if record is None:
            logger.warning(f"Join of room {channel} by unknown connection {connection_id} ignored")
            return False
        if channel in record.channels:
            return False
        record.channels.add(channel)
        self._channels.setdefault(channel, set()).add(connection_id)
        logger.info(f"User {connection_id} joined room: {channel} ({len(self._channels[channel])} clients)")
        return True

    def leave(self, connection_id: str, channel: str) -> bool:
        record = self.registry.get(connection_id)
        if record is None or channel not in record.channels:
            return False
        record.channels.discard(channel)
        self._discard(channel, connection_id)
        logger.info(f"User {connection_id} left room: {channel}")
        return True

    def _discard(self, channel: str, connection_id: str) -> None:
        members = self._channels.get(channel)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._channels[channel]
            logger.debug(f"Room {channel} is empty, dropped")

    def is_member(self, connection_id: str, channel: str) -> bool:
        return connection_id in self._channels.get(channel, ())

    def channel_size(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    def members(self, channel: str) -> List[str]:
        return list(self._channels.get(channel, ()))

    def channels(self) -> List[str]:
        return list(self._channels)

    def channel_count(self) -> int:
        return len(self._channels)

    # Fan-out

    def broadcast(self, channel: str, event: str, payload: Any) -> int:
        """Send ``payload`` tagged ``event`` to everyone in ``channel``.

        The audience is the membership at call time. The return value is the
        size of that audience, not a count of confirmed deliveries: a frame
        whose transport write fails is silently lost.
        """
        if self._transport is None:
            logger.warning(f"Relay not initialized, {event} to {channel} dropped")
            return 0

        audience = self.members(channel)
        for connection_id in audience:
            try:
                self._transport.deliver(connection_id, event, payload)
            except Exception as e:
                logger.warning(f"Delivery of {event} to {connection_id} in {channel} failed: {e}", exc_info=True)

        logger.info(f"{event} → {channel} ({len(audience)} clients)")
        return len(audience)

    def relay_from(self, sender_id: str, channel: str, event: str, payload: Any) -> int:
        """Broadcast on behalf of a client, only if that client is in the channel itself."""
        if not self.is_member(sender_id, channel):
            logger.warning(f"Rejected {event} from {sender_id}: not a member of {channel}")
            return 0
        return self.broadcast(channel, event, payload)

    def send_to(self, connection_id: str, event: str, payload: Any) -> bool:
        """Deliver to a single connection, bypassing rooms (handshake and acks)."""
        if self._transport is None or connection_id not in self.registry:
            return False
        return self._transport.deliver(connection_id, event, payload)

    # Backend-facing helpers, keyed by game and user ids

    def emit_new_comment(self, game_id, comment: dict) -> int:
        return self.broadcast(game_room_name(game_id), GAME_COMMENT_NEW, comment)

    def emit_edit_comment(self, game_id, comment: dict) -> int:
        return self.broadcast(game_room_name(game_id), GAME_COMMENT_EDIT, comment)

    def emit_delete_comment(self, game_id, comment_id) -> int:
        return self.broadcast(game_room_name(game_id), GAME_COMMENT_DELETE, {"id": comment_id, "gameId": game_id})

    def emit_to_game(self, game_id, event: str, data: Any) -> int:
        return self.broadcast(game_room_name(game_id), event, data)

    def emit_to_user(self, user_id: UserId, event: str, data: Any) -> int:
        return self.broadcast(user_room_name(user_id), event, data)
