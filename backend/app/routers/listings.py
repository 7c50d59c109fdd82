"""Listing API endpoints."""

from fastapi import APIRouter, Depends

from propertyhub.models import ListingCreate, ListingUpdate

from ..auth import CurrentUser
from ..dependencies import get_current_user, get_services
from ..errors import api_response
from ..services import Services

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("", status_code=201)
async def create_listing(
    body: ListingCreate,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    listing = await services.listings.create(body, user)
    return api_response(listing, "Listing created successfully.", status_code=201)


@router.get("")
async def get_all_listings(services: Services = Depends(get_services)):
    listings = await services.listings.list_all()
    return api_response(listings, "All listings fetched successfully.")


@router.get("/seller/{seller_id}")
async def get_listings_by_seller(seller_id: str, services: Services = Depends(get_services)):
    listings = await services.listings.list_by_seller(seller_id)
    return api_response(listings, "Seller listings fetched successfully.")


@router.get("/{listing_id}")
async def get_listing(listing_id: str, services: Services = Depends(get_services)):
    listing = await services.listings.get(listing_id)
    return api_response(listing, "Listing fetched successfully.")


@router.put("/{listing_id}")
async def update_listing(
    listing_id: str,
    body: ListingUpdate,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    listing = await services.listings.update(listing_id, body, user)
    return api_response(listing, "Listing updated successfully.")


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.listings.delete(listing_id, user)
    return api_response(None, "Listing deleted successfully.")
