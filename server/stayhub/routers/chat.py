"""Chat router: REST endpoints plus the WebSocket channel for live delivery."""

import json
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import RequiredAuth, decode_principal, get_chat_service, get_db
from ..core.exceptions import AuthenticationError, DomainError
from ..schemas.auth import Principal
from ..schemas.chat import (
    ChatMessage,
    Conversation,
    ConversationRequest,
    SendMessageRequest,
    UnreadCount,
)
from ..schemas.common import PROBLEM_RESPONSES
from ..services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/chat", tags=["chat"], responses=PROBLEM_RESPONSES)

CHAT_SERVICE_DEPENDENCY = Depends(get_chat_service)


@router.post("/send", response_model=ChatMessage, status_code=201)
async def send_message(
    request: SendMessageRequest,
    principal: Principal = RequiredAuth,
    chat_service: ChatService = CHAT_SERVICE_DEPENDENCY
) -> JSONResponse:
    message = await chat_service.send_message(
        sender_id=principal.user_id,
        receiver_id=request.receiver_id,
        content=request.content,
        booking_id=request.booking_id
    )
    return JSONResponse(
        status_code=201,
        content=ChatMessage.model_validate(message).model_dump(mode="json")
    )


@router.post("/conversation", response_model=Conversation)
async def get_conversation(
    request: ConversationRequest,
    principal: Principal = RequiredAuth,
    chat_service: ChatService = CHAT_SERVICE_DEPENDENCY
) -> JSONResponse:
    """Messages between the caller and another user, oldest first."""
    messages = await chat_service.get_conversation(principal.user_id, request.other_user_id)
    items = [ChatMessage.model_validate(m) for m in messages]
    return JSONResponse(
        status_code=200,
        content=Conversation(items=items).model_dump(mode="json")
    )


@router.post("/read", response_model=UnreadCount)
async def mark_as_read(
    request: ConversationRequest,
    principal: Principal = RequiredAuth,
    chat_service: ChatService = CHAT_SERVICE_DEPENDENCY
) -> JSONResponse:
    """Mark a conversation as read and return the caller's remaining unread count."""
    await chat_service.mark_as_read(principal.user_id, request.other_user_id)
    unread = await chat_service.get_unread_count(principal.user_id)
    return JSONResponse(
        status_code=200,
        content=UnreadCount(unread=unread).model_dump()
    )


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    token: str = Query(...),
    db: AsyncSession = Depends(get_db)
):
    """
    Live chat channel.

    Clients authenticate with ``?token=<JWT>``. Inbound frames of the form
    ``{"type": "send", "receiver_id": ..., "content": ..., "booking_id": ...}``
    are delivered like ``/v1/chat/send``; new messages addressed to the
    caller arrive as ``{"type": "new_message", "message": {...}}``.
    """
    try:
        principal = decode_principal(token)
    except AuthenticationError as e:
        logger.warning("Chat connection rejected", extra={"reason": e.detail})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    registry = websocket.app.state.connection_registry
    chat_service = ChatService(db, registry)

    await websocket.accept()
    await registry.register(principal.user_id, websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "detail": "Frame is not valid JSON"})
                continue

            if not isinstance(frame, dict) or frame.get("type") != "send":
                await websocket.send_json({"type": "error", "detail": "Unsupported frame type"})
                continue

            try:
                request = SendMessageRequest.model_validate(frame)
                message = await chat_service.send_message(
                    sender_id=principal.user_id,
                    receiver_id=request.receiver_id,
                    content=request.content,
                    booking_id=request.booking_id
                )
            except PydanticValidationError as e:
                await websocket.send_json({"type": "error", "detail": str(e)})
                continue
            except DomainError as e:
                await websocket.send_json({"type": "error", "code": e.kind.value, "detail": e.message})
                continue

            await websocket.send_json({
                "type": "message_sent",
                "message": ChatMessage.model_validate(message).model_dump(mode="json"),
            })

    except WebSocketDisconnect:
        logger.debug("Chat client disconnected", extra={"user_id": str(principal.user_id)})

    finally:
        await registry.unregister(principal.user_id, websocket)
