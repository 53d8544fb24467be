"""Property-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.property import PropertyStatus


class CreatePropertyRequest(BaseModel):
    """Request schema for listing a new property."""

    title: str = Field(..., min_length=1, max_length=255, description="Listing title")
    description: Optional[str] = Field(None, description="Listing description")
    city: str = Field(..., min_length=1, max_length=100, description="City")
    country: str = Field(..., min_length=1, max_length=100, description="Country")
    max_guests: int = Field(..., ge=1, description="Maximum number of guests")
    price_per_night: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Nightly price")


class UpdatePropertyRequest(BaseModel):
    """Request schema for updating a property; omitted fields are left unchanged."""

    property_id: UUID = Field(..., description="Property to update")
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    max_guests: Optional[int] = Field(None, ge=1)
    price_per_night: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    status: Optional[PropertyStatus] = None


class GetPropertyRequest(BaseModel):
    """Request schema for getting a property."""

    property_id: UUID = Field(..., description="Property to retrieve")


class ListPropertiesRequest(BaseModel):
    """Request schema for listing a host's properties."""

    host_id: Optional[UUID] = Field(None, description="Host whose listings to return; defaults to the caller")


class Property(BaseModel):
    """Property response schema."""

    id: UUID
    host_id: UUID
    title: str
    description: Optional[str] = None
    city: str
    country: str
    max_guests: int
    price_per_night: Decimal
    status: PropertyStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class PropertyList(BaseModel):
    """List of properties."""

    items: list[Property]
    count: int
