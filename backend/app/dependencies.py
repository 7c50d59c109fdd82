"""FastAPI dependencies: settings, services and the auth gate."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from propertyhub.config import Settings

from .auth import ACCESS_COOKIE, CurrentUser
from .errors import InternalError
from .services import Services

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise InternalError("Database is not configured")
    return services


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> CurrentUser:
    """Dependency: require a valid access token from the cookie or Bearer header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if not token and credentials:
        token = credentials.credentials
    return await services.users.authenticate(token)
