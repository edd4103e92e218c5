from typing import Annotated, Any, Dict, Optional, Union

from pydantic import BaseModel, Field, RootModel, StrictInt

NonEmptyStr = Annotated[str, Field(min_length=1)]
# JSON booleans are not ids
Identifier = Union[StrictInt, NonEmptyStr]


class InboundFrame(BaseModel):
    """A JSON text frame sent by a client: ``{"event": ..., "data": ..., "ack": ...}``."""
    event: NonEmptyStr
    data: Any = None
    ack: Optional[Union[int, str]] = None


class RoomName(RootModel[NonEmptyStr]):
    pass


class UserIdentifier(RootModel[Identifier]):
    pass


class MessageEvent(BaseModel):
    room: NonEmptyStr
    message: Any = None


class PrivateMessageEvent(BaseModel):
    to: NonEmptyStr
    message: Any = None


class CommentNewEvent(BaseModel):
    gameId: Identifier
    # Forwarded as-is, the producer owns its shape
    comment: Dict[str, Any]


class PlayersUpdatedEvent(BaseModel):
    gameId: Identifier
