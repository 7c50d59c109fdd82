"""User API endpoints: register, login, logout, token refresh."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request

from propertyhub.config import Settings
from propertyhub.models import UserCreate, UserLogin
from propertyhub.models.base import CamelModel

from ..auth import REFRESH_COOKIE, CurrentUser, clear_auth_cookies, set_auth_cookies
from ..dependencies import get_app_settings, get_current_user, get_services
from ..errors import api_response
from ..services import Services

router = APIRouter()


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


@router.post("/register", status_code=201)
async def register(body: UserCreate, services: Services = Depends(get_services)):
    """Register a new buyer or seller account."""
    user = await services.users.register(body)
    return api_response(user, "User registered successfully", status_code=201)


@router.post("/login")
async def login(
    body: UserLogin,
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_app_settings),
):
    """Login with email and password; tokens are returned and set as cookies."""
    result = await services.users.login(body)
    response = api_response(result, "User logged in successfully")
    set_auth_cookies(response, result.access_token, result.refresh_token, settings)
    return response


@router.post("/logout")
async def logout(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_app_settings),
):
    """Forget the refresh token and clear the auth cookies."""
    await services.users.logout(user.id)
    response = api_response({}, "User logged out")
    clear_auth_cookies(response, settings)
    return response


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    body: Optional[RefreshRequest] = Body(default=None),
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_app_settings),
):
    """Exchange a refresh token (cookie or body) for a new token pair."""
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    result = await services.users.refresh(token)
    response = api_response(result, "Access token refreshed")
    set_auth_cookies(response, result.access_token, result.refresh_token, settings)
    return response


@router.get("/me")
async def get_me(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Get current user profile."""
    return api_response(await services.users.get(user.id), "Current user fetched successfully")
