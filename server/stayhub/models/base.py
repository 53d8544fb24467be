"""Shared model building blocks."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, declarative_mixin, mapped_column


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the stored column values."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_values(enum_cls) -> list[str]:
    """Persist enum members by value rather than by name."""
    return [member.value for member in enum_cls]


@declarative_mixin
class TimestampMixin:
    """Creation and modification timestamps, set on insert and on every update."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )
