"""Chat-related Pydantic schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    """Request schema for sending a direct message."""

    receiver_id: UUID = Field(..., description="Recipient user ID")
    booking_id: Optional[UUID] = Field(None, description="Booking the conversation is about")
    content: str = Field(..., min_length=1, max_length=2000, description="Message text")


class ConversationRequest(BaseModel):
    """Request schema for reading or acknowledging a conversation."""

    other_user_id: UUID = Field(..., description="The other participant")


class ChatMessage(BaseModel):
    """Message response schema."""

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    booking_id: Optional[UUID] = None
    content: str
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class Conversation(BaseModel):
    """Messages exchanged between two users, oldest first."""

    items: list[ChatMessage]


class UnreadCount(BaseModel):
    """Number of unread messages addressed to the caller."""

    unread: int
