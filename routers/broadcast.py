import json
from datetime import datetime
from typing import Any, List, Tuple, Type, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ValidationError

from dependencies import get_relay
from logging_config import get_logger
from relay import GAME_COMMENT_DELETE, GAME_COMMENT_EDIT, GAME_COMMENT_NEW, ChannelRelay
from room_names import game_room_name, user_room_name
from schemas.broadcast import (
    BroadcastResponse,
    DeleteCommentRequest,
    EditCommentRequest,
    GameEventRequest,
    NewCommentRequest,
    UserEventRequest,
)

logger = get_logger(__name__)

broadcast_router = APIRouter(prefix="/api/broadcast", tags=["broadcast"])

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def missing_fields(required: List[str]) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": "Missing required fields", "required": required})


async def parse_request(http_request: Request, model: Type[RequestModel], required: List[str]) -> Tuple[RequestModel, Any]:
    """Read and validate a JSON body, turning any failure into a 400 that lists the required fields.

    Returns the validated model together with the raw body, so opaque payloads
    can be forwarded exactly as received.
    """
    try:
        body = json.loads(await http_request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning(f"Rejected {model.__name__}: body is not valid JSON")
        raise missing_fields(required)
    try:
        return model.model_validate(body), body
    except ValidationError as e:
        logger.warning(f"Rejected {model.__name__}: {e.error_count()} invalid or missing fields")
        raise missing_fields(required)


def game_response(game_id, event: str, recipients: int) -> BroadcastResponse:
    return BroadcastResponse(
        success=True,
        gameId=game_id,
        room=game_room_name(game_id),
        recipients=recipients,
        event=event,
        timestamp=datetime.now().isoformat(),
    )


@broadcast_router.post("/game-comment/new", response_model=BroadcastResponse, response_model_exclude_none=True)
async def broadcast_new_comment(http_request: Request, relay: ChannelRelay = Depends(get_relay)):
    request, body = await parse_request(http_request, NewCommentRequest, ["gameId", "comment.id", "comment.text"])
    logger.info(f"New comment {request.comment.id} for game {request.gameId}")
    # Forward the comment exactly as the backend sent it
    recipients = relay.emit_new_comment(request.gameId, body["comment"])
    return game_response(request.gameId, GAME_COMMENT_NEW, recipients)


@broadcast_router.post("/game-comment/edit", response_model=BroadcastResponse, response_model_exclude_none=True)
async def broadcast_edit_comment(http_request: Request, relay: ChannelRelay = Depends(get_relay)):
    request, body = await parse_request(http_request, EditCommentRequest, ["gameId", "comment.id"])
    logger.info(f"Edited comment {request.comment.id} for game {request.gameId}")
    recipients = relay.emit_edit_comment(request.gameId, body["comment"])
    return game_response(request.gameId, GAME_COMMENT_EDIT, recipients)


@broadcast_router.post("/game-comment/delete", response_model=BroadcastResponse, response_model_exclude_none=True)
async def broadcast_delete_comment(http_request: Request, relay: ChannelRelay = Depends(get_relay)):
    request, body = await parse_request(http_request, DeleteCommentRequest, ["gameId", "commentId"])
    logger.info(f"Deleted comment {request.commentId} for game {request.gameId}")
    recipients = relay.emit_delete_comment(request.gameId, request.commentId)
    return game_response(request.gameId, GAME_COMMENT_DELETE, recipients)


@broadcast_router.post("/game-event", response_model=BroadcastResponse, response_model_exclude_none=True)
async def broadcast_game_event(http_request: Request, relay: ChannelRelay = Depends(get_relay)):
    request, body = await parse_request(http_request, GameEventRequest, ["gameId", "event"])
    recipients = relay.emit_to_game(request.gameId, request.event, body.get("data"))
    return game_response(request.gameId, request.event, recipients)


@broadcast_router.post("/user-event", response_model=BroadcastResponse, response_model_exclude_none=True)
async def broadcast_user_event(http_request: Request, relay: ChannelRelay = Depends(get_relay)):
    request, body = await parse_request(http_request, UserEventRequest, ["userId", "event"])
    recipients = relay.emit_to_user(request.userId, request.event, body.get("data"))
    return BroadcastResponse(
        success=True,
        userId=request.userId,
        room=user_room_name(request.userId),
        recipients=recipients,
        event=request.event,
        timestamp=datetime.now().isoformat(),
    )
