from fastapi import APIRouter, Depends

from dependencies import get_relay
from logging_config import get_logger
from relay import ChannelRelay
from schemas.rooms import RoomInfoResponse

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/api/room", tags=["rooms"])


@rooms_router.get("/{room_name}", response_model=RoomInfoResponse)
async def get_room_details(room_name: str, relay: ChannelRelay = Depends(get_relay)):
    """Current audience of a room. Rooms without members are reported with ``exists: false``."""
    clients = relay.channel_size(room_name)
    logger.debug(f"Room details for {room_name}: {clients} clients")
    return RoomInfoResponse(room=room_name, clients=clients, exists=clients > 0)
