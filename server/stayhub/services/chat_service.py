"""Chat service: direct messages between guests and hosts."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AuthorizationError, DomainError, NotFoundError
from ..models.booking import Booking
from ..models.message import Message
from ..schemas.chat import ChatMessage
from .connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class ChatService:
    """Service for chat-related operations."""

    def __init__(self, db: AsyncSession, registry: ConnectionRegistry):
        self.db = db
        self.registry = registry

    async def send_message(
        self,
        sender_id: UUID,
        receiver_id: UUID,
        content: str,
        booking_id: Optional[UUID] = None
    ) -> Message:
        """
        Persist a message and push it to the receiver if they are connected.

        When the message is about a booking, sender and receiver must be that
        booking's guest and host, in either direction.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the pair is not the booking's guest and host
        """
        if booking_id is not None:
            try:
                await self._check_booking_parties(booking_id, sender_id, receiver_id)
            except DomainError:
                await self.db.rollback()
                raise

        message = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            booking_id=booking_id,
            content=content
        )
        self.db.add(message)
        await self.db.flush()
        await self.db.refresh(message)
        await self.db.commit()

        delivered = await self.registry.publish(
            receiver_id,
            {
                "type": "new_message",
                "message": ChatMessage.model_validate(message).model_dump(mode="json"),
            }
        )

        logger.info(
            "Message sent",
            extra={
                "message_id": str(message.id),
                "booking_id": str(booking_id) if booking_id else None,
                "delivered": delivered
            }
        )

        return message

    async def get_conversation(self, user_id: UUID, other_user_id: UUID) -> list[Message]:
        """Messages exchanged between two users, oldest first."""
        stmt = (
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user_id, Message.receiver_id == other_user_id),
                    and_(Message.sender_id == other_user_id, Message.receiver_id == user_id),
                )
            )
            .order_by(Message.created_at, Message.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def mark_as_read(self, user_id: UUID, other_user_id: UUID) -> int:
        """Mark messages from ``other_user_id`` to ``user_id`` as read; returns how many changed."""
        stmt = (
            update(Message)
            .where(
                Message.sender_id == other_user_id,
                Message.receiver_id == user_id,
                Message.read.is_(False)
            )
            .values(read=True)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount

    async def get_unread_count(self, user_id: UUID) -> int:
        stmt = select(func.count(Message.id)).where(
            Message.receiver_id == user_id,
            Message.read.is_(False)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def _check_booking_parties(self, booking_id: UUID, sender_id: UUID, receiver_id: UUID) -> None:
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))

        pair = {sender_id, receiver_id}
        if len(pair) != 2 or pair != {booking.guest_id, booking.property.host_id}:
            logger.warning(
                "Message rejected - users are not parties to the booking",
                extra={
                    "booking_id": str(booking_id),
                    "sender_id": str(sender_id),
                    "receiver_id": str(receiver_id)
                }
            )
            raise AuthorizationError("Not authorized to send messages in this conversation")
