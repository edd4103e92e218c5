from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Set, Union

from logging_config import get_logger

logger = get_logger(__name__)

UserId = Union[int, str]


@dataclass
class ConnectionRecord:
    connection_id: str
    remote_address: Optional[str] = None
    connected_at: datetime = field(default_factory=datetime.now)
    user_id: Optional[UserId] = None
    # Only ChannelRelay mutates this, together with its channel index
    channels: Set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "remote_address": self.remote_address,
            "connected_at": self.connected_at.isoformat(),
            "user_id": self.user_id,
            "channels": sorted(self.channels),
        }


class ConnectionRegistry:
    """Live connections of this relay process, keyed by connection id."""

    def __init__(self):
        self._connections: Dict[str, ConnectionRecord] = {}

    def on_connect(self, connection_id: str, remote_address: Optional[str] = None) -> ConnectionRecord:
        if connection_id in self._connections:
            logger.warning(f"Connection {connection_id} already registered, replacing record")
        record = ConnectionRecord(connection_id=connection_id, remote_address=remote_address)
        self._connections[connection_id] = record
        logger.debug(f"Registered connection {connection_id} from {remote_address} (live: {len(self._connections)})")
        return record

    def on_register(self, connection_id: str, user_id: UserId) -> Optional[ConnectionRecord]:
        record = self._connections.get(connection_id)
        if record is None:
            logger.debug(f"Register for unknown connection {connection_id} ignored")
            return None
        if record.user_id is not None and record.user_id != user_id:
            logger.info(f"Connection {connection_id} re-registered as user {user_id} (was {record.user_id})")
        record.user_id = user_id
        return record

    def on_disconnect(self, connection_id: str) -> Optional[ConnectionRecord]:
        """Drop the record and return it so the caller can clear its channels.

        Unknown ids return None; the connection is treated as already clean.
        """
        record = self._connections.pop(connection_id, None)
        if record is None:
            logger.debug(f"Disconnect for unknown connection {connection_id} ignored")
        return record

    def get(self, connection_id: str) -> Optional[ConnectionRecord]:
        return self._connections.get(connection_id)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def snapshot(self) -> int:
        return len(self._connections)
