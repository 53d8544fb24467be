"""Property service for listing management."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AuthorizationError, NotFoundError
from ..models.property import Property, PropertyStatus
from ..schemas.auth import Principal
from ..schemas.property import CreatePropertyRequest, UpdatePropertyRequest

logger = logging.getLogger(__name__)


class PropertyService:
    """Service for property-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_property(self, request: CreatePropertyRequest, principal: Principal) -> Property:
        """
        List a new property owned by the requesting host.

        Args:
            request: Property creation request
            principal: Requesting user; must hold the host or admin role

        Returns:
            Created property entity

        Raises:
            AuthorizationError: If the requester cannot host
        """
        if not principal.can_host:
            logger.warning(
                "Property creation rejected - requester is not a host",
                extra={"user_id": str(principal.user_id), "role": principal.role.value}
            )
            raise AuthorizationError("Only hosts can list properties")

        property = Property(
            host_id=principal.user_id,
            title=request.title,
            description=request.description,
            city=request.city,
            country=request.country,
            max_guests=request.max_guests,
            price_per_night=request.price_per_night,
        )

        self.db.add(property)
        await self.db.commit()
        await self.db.refresh(property)

        logger.info(
            "Property created successfully",
            extra={
                "property_id": str(property.id),
                "host_id": str(property.host_id),
                "price_per_night": str(property.price_per_night)
            }
        )

        return property

    async def update_property(self, request: UpdatePropertyRequest, principal: Principal) -> Property:
        """
        Update a property; only its host may do so.

        Raises:
            NotFoundError: If the property does not exist
            AuthorizationError: If the requester is not the owning host
        """
        property = await self.get_property_by_id_or_raise(request.property_id)

        if property.host_id != principal.user_id:
            logger.warning(
                "Property update rejected - requester is not the host",
                extra={"property_id": str(property.id), "user_id": str(principal.user_id)}
            )
            raise AuthorizationError("Only the host can update this property")

        changes = request.model_dump(exclude_unset=True, exclude={"property_id"})
        for field, value in changes.items():
            if value is not None:
                setattr(property, field, value)

        await self.db.commit()
        await self.db.refresh(property)

        logger.info(
            "Property updated successfully",
            extra={"property_id": str(property.id), "fields": sorted(changes)}
        )

        return property

    async def deactivate_property(self, property_id: UUID, principal: Principal) -> Property:
        """
        Withdraw a listing. The row is kept because bookings reference it;
        an inactive property accepts no new bookings.

        Raises:
            NotFoundError: If the property does not exist
            AuthorizationError: If the requester is not the owning host
        """
        property = await self.get_property_by_id_or_raise(property_id)

        if property.host_id != principal.user_id:
            logger.warning(
                "Property deactivation rejected - requester is not the host",
                extra={"property_id": str(property_id), "user_id": str(principal.user_id)}
            )
            raise AuthorizationError("Only the host can deactivate this property")

        property.status = PropertyStatus.INACTIVE
        await self.db.commit()
        await self.db.refresh(property)

        logger.info(
            "Property deactivated",
            extra={"property_id": str(property_id), "host_id": str(property.host_id)}
        )

        return property

    async def list_host_properties(self, host_id: UUID) -> list[Property]:
        """List a host's properties, newest first."""
        stmt = (
            select(Property)
            .where(Property.host_id == host_id)
            .order_by(Property.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_property_by_id(self, property_id: UUID) -> Optional[Property]:
        """Get property by ID."""
        stmt = select(Property).where(Property.id == property_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_property_by_id_or_raise(self, property_id: UUID) -> Property:
        """Get property by ID or raise NotFoundError."""
        property = await self.get_property_by_id(property_id)
        if not property:
            logger.warning(
                "Property not found",
                extra={"property_id": str(property_id)}
            )
            raise NotFoundError(
                resource_type="property",
                resource_id=str(property_id)
            )
        return property
