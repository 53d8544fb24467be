"""Property router for listing management operations."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..core.dependencies import RequiredAuth, get_property_service
from ..schemas.auth import Principal
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.property import (
    CreatePropertyRequest,
    GetPropertyRequest,
    ListPropertiesRequest,
    Property,
    PropertyList,
    UpdatePropertyRequest,
)
from ..services.property_service import PropertyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/property", tags=["property"], responses=PROBLEM_RESPONSES)

PROPERTY_SERVICE_DEPENDENCY = Depends(get_property_service)


@router.post("/create", response_model=Property, status_code=201)
async def create_property(
    request: CreatePropertyRequest,
    principal: Principal = RequiredAuth,
    property_service: PropertyService = PROPERTY_SERVICE_DEPENDENCY
) -> JSONResponse:
    """List a new property owned by the calling host."""
    property = await property_service.create_property(request, principal)
    return JSONResponse(
        status_code=201,
        content=Property.model_validate(property).model_dump(mode="json")
    )


@router.post("/get", response_model=Property)
async def get_property(
    request: GetPropertyRequest,
    principal: Principal = RequiredAuth,
    property_service: PropertyService = PROPERTY_SERVICE_DEPENDENCY
) -> JSONResponse:
    property = await property_service.get_property_by_id_or_raise(request.property_id)
    return JSONResponse(
        status_code=200,
        content=Property.model_validate(property).model_dump(mode="json")
    )


@router.post("/update", response_model=Property)
async def update_property(
    request: UpdatePropertyRequest,
    principal: Principal = RequiredAuth,
    property_service: PropertyService = PROPERTY_SERVICE_DEPENDENCY
) -> JSONResponse:
    """Update a property; omitted fields are left unchanged."""
    property = await property_service.update_property(request, principal)
    return JSONResponse(
        status_code=200,
        content=Property.model_validate(property).model_dump(mode="json")
    )


@router.post("/deactivate", response_model=Property)
async def deactivate_property(
    request: GetPropertyRequest,
    principal: Principal = RequiredAuth,
    property_service: PropertyService = PROPERTY_SERVICE_DEPENDENCY
) -> JSONResponse:
    """Withdraw a listing from booking; existing bookings are kept."""
    property = await property_service.deactivate_property(request.property_id, principal)
    return JSONResponse(
        status_code=200,
        content=Property.model_validate(property).model_dump(mode="json")
    )


@router.post("/list", response_model=PropertyList)
async def list_properties(
    request: ListPropertiesRequest,
    principal: Principal = RequiredAuth,
    property_service: PropertyService = PROPERTY_SERVICE_DEPENDENCY
) -> JSONResponse:
    """List a host's properties, defaulting to the caller's own."""
    host_id = request.host_id or principal.user_id
    properties = await property_service.list_host_properties(host_id)
    items = [Property.model_validate(p) for p in properties]

    logger.debug(
        "Properties listed",
        extra={"host_id": str(host_id), "count": len(items)}
    )

    return JSONResponse(
        status_code=200,
        content=PropertyList(items=items, count=len(items)).model_dump(mode="json")
    )
