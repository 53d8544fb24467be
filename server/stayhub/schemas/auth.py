"""Authenticated principal schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Account role carried in the bearer token."""
    GUEST = "guest"
    HOST = "host"
    ADMIN = "admin"


class Principal(BaseModel):
    """The user on whose behalf a request is made."""

    user_id: UUID = Field(..., description="Authenticated user ID (token subject)")
    role: UserRole = Field(UserRole.GUEST, description="Account role")

    model_config = {"frozen": True}

    @property
    def can_host(self) -> bool:
        return self.role in (UserRole.HOST, UserRole.ADMIN)
