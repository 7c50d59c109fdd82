"""Property API endpoints: create, nearby search, read, update, delete."""

from typing import Optional, Union

from fastapi import APIRouter, Body, Depends, Query

from propertyhub.models import PropertyCreate, PropertyUpdate

from ..auth import CurrentUser
from ..dependencies import get_current_user, get_services
from ..errors import api_response
from ..services import Services

router = APIRouter(dependencies=[Depends(get_current_user)])


# GET also creates, for older clients of this route.
@router.api_route("", methods=["POST", "GET"], status_code=201)
async def create_properties(
    body: Union[list[PropertyCreate], PropertyCreate] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Create one property, or several when the body is an array."""
    payloads = body if isinstance(body, list) else [body]
    created = await services.properties.create(payloads, user)
    return api_response(created, "Properties created successfully", status_code=201)


@router.get("/nearby")
async def nearby_properties(
    lat: Optional[float] = Query(default=None, description="Latitude of the search origin"),
    lon: Optional[float] = Query(default=None, description="Longitude of the search origin"),
    radius: Optional[float] = Query(default=None, description="Search radius in meters"),
    services: Services = Depends(get_services),
):
    """Properties within the radius, nearest first, capped at one page."""
    result = await services.properties.nearby(lat, lon, radius)
    return api_response(result, "Nearby properties fetched successfully.")


@router.get("/{property_id}")
async def get_property(property_id: str, services: Services = Depends(get_services)):
    prop = await services.properties.get(property_id)
    return api_response(prop, "Property fetched successfully.")


@router.put("/{property_id}")
async def update_property(
    property_id: str,
    body: PropertyUpdate,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    prop = await services.properties.update(property_id, body, user)
    return api_response(prop, "Property updated successfully.")


@router.delete("/{property_id}")
async def delete_property(
    property_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.properties.delete(property_id, user)
    return api_response(None, "Property deleted successfully.")
