from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from schemas.events import Identifier, NonEmptyStr


class CommentPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Identifier
    text: str


class EditedCommentPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Identifier
    text: Optional[str] = None


class NewCommentRequest(BaseModel):
    gameId: Identifier
    comment: CommentPayload


class EditCommentRequest(BaseModel):
    gameId: Identifier
    comment: EditedCommentPayload


class DeleteCommentRequest(BaseModel):
    gameId: Identifier
    commentId: Identifier


class GameEventRequest(BaseModel):
    gameId: Identifier
    event: NonEmptyStr
    data: Any = None


class UserEventRequest(BaseModel):
    userId: Identifier
    event: NonEmptyStr
    data: Any = None


class BroadcastResponse(BaseModel):
    success: bool
    gameId: Optional[Union[int, str]] = None
    userId: Optional[Union[int, str]] = None
    room: str
    # Room size when the broadcast started, not confirmed deliveries
    recipients: int = Field(ge=0)
    event: str
    timestamp: str
