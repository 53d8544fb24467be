"""FastAPI dependencies for database sessions, authentication, and services."""

from typing import AsyncGenerator, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header, Request
from jwt import PyJWTError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import Principal
from ..services.booking_service import BookingService
from ..services.chat_service import ChatService
from ..services.connection_registry import ConnectionRegistry
from ..services.payment_service import PaymentService
from ..services.property_service import PropertyService
from .config import settings
from .database import get_async_session
from .exceptions import AuthenticationError


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


def decode_principal(token: str) -> Principal:
    """
    Verify a bearer token and build the principal it names.

    Tokens are HS256 JWTs whose ``sub`` is the user UUID and whose ``role``
    is one of guest, host or admin. Expiry is enforced when ``exp`` is present.

    Raises:
        AuthenticationError: If the token is invalid or its claims are malformed
    """
    try:
        payload = jwt.decode(
            token,
            settings.bearer_token_secret,
            algorithms=[settings.bearer_token_algorithm]
        )
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}") from e

    subject = payload.get("sub")
    if subject is None:
        raise AuthenticationError(detail="Invalid token payload")

    try:
        return Principal(user_id=UUID(str(subject)), role=payload.get("role", "guest"))
    except (ValueError, PydanticValidationError) as e:
        raise AuthenticationError(detail="Invalid token claims") from e


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> Principal:
    """
    Authentication dependency that validates Bearer tokens.

    Raises:
        AuthenticationError: If the header is missing, malformed, or the token is invalid
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError as e:
        raise AuthenticationError(detail="Invalid authorization header format") from e

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")

    return decode_principal(token)


def get_connection_registry(request: Request) -> ConnectionRegistry:
    """The application's chat connection registry."""
    return request.app.state.connection_registry


def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_payment_service(db: AsyncSession = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(db)


def get_chat_service(
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_connection_registry)
) -> ChatService:
    return ChatService(db, registry)


RequiredAuth = Depends(get_current_user)
