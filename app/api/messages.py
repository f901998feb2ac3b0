from fastapi import APIRouter, Depends, Query

from app.dependencies.auth_dependencies import get_current_actor
from app.dependencies.service_dependencies import get_chat_service
from app.schemas.auth import Actor
from ..schemas.message import MessageCreatedResponse, MessageCreateRequest, MessageListResponse
from ..services.chat_service import ChatService

router = APIRouter(prefix="/rooms/{room_id}/messages", tags=["messages"])

@router.post("", response_model=MessageCreatedResponse)
async def send_message(
    room_id: int,
    request: MessageCreateRequest,
    actor: Actor = Depends(get_current_actor),
    chat_service: ChatService = Depends(get_chat_service)
):
    """
    Send a message to a room.

    Args:
        room_id: ID of the room
        request: Message creation request
        actor: Authenticated caller
        chat_service: Chat service instance

    Returns:
        MessageCreatedResponse with the stored message
    """
    message = await chat_service.send_message(room_id, actor.user_id, request.content)
    return MessageCreatedResponse(message=message)

@router.get("", response_model=MessageListResponse)
async def get_room_messages(
    room_id: int,
    actor: Actor = Depends(get_current_actor),
    chat_service: ChatService = Depends(get_chat_service),
    limit: int = Query(50, ge=1, le=100, description="Number of messages to return"),
    offset: int = Query(0, ge=0, description="Number of messages to skip")
):
    """
    Retrieve message history for a room, newest first.
    """
    messages = await chat_service.get_room_messages(room_id, actor.user_id, limit=limit, offset=offset)
    return MessageListResponse(messages=messages)
