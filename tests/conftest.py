"""Pytest fixtures and test utilities."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import auth
from app.main import create_app
from app.services import Services, build_services
from fakes import MemoryListingStore, MemoryPropertyStore, MemoryUserStore
from propertyhub.cache import MemoryCache
from propertyhub.config import Settings

# Cheap hashes keep the auth tests fast
auth.pwd_context.update(bcrypt__rounds=4)

PASSWORD = "correct-horse-battery"


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        database_url=None,
        redis_url=None,
        cache_namespace="test",
        jwt_secret_key="test-secret",
    )


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache(namespace="test")


@pytest.fixture
def user_store() -> MemoryUserStore:
    return MemoryUserStore()


@pytest.fixture
def property_store() -> MemoryPropertyStore:
    return MemoryPropertyStore()


@pytest.fixture
def listing_store(property_store: MemoryPropertyStore) -> MemoryListingStore:
    return MemoryListingStore(property_store)


@pytest.fixture
def services(settings, cache, user_store, property_store, listing_store) -> Services:
    return build_services(user_store, property_store, listing_store, cache, settings)


@pytest.fixture
def app(settings: Settings, cache, services: Services) -> FastAPI:
    """App wired to in-memory stores; the lifespan (DB pool) is not run."""
    application = create_app(settings)
    application.state.cache = cache
    application.state.services = services
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def user_payload(email: str, role: str = "seller", **overrides) -> dict:
    body = {
        "name": "Asha Rao",
        "email": email,
        "phone": "9876543210",
        "password": PASSWORD,
        "role": role,
    }
    body.update(overrides)
    return body


def login(client: TestClient, email: str, role: str = "seller") -> dict:
    """Register and log in; returns the user id and Bearer headers.

    The client's cookie jar is cleared so later requests authenticate only
    through the returned headers.
    """
    client.post("/api/v1/user/register", json=user_payload(email, role))
    resp = client.post("/api/v1/user/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    client.cookies.clear()
    return {
        "id": data["user"]["id"],
        "headers": {"Authorization": f"Bearer {data['accessToken']}"},
        "refresh_token": data["refreshToken"],
    }


def property_payload(lat: float = 12.9, lng: float = 77.6, **overrides) -> dict:
    body = {
        "name": "Lake View Residency",
        "address": "12 MG Road",
        "pincode": "560001",
        "city": "Bengaluru",
        "state": "Karnataka",
        "location": {"lat": lat, "lng": lng},
        "listingType": "sale",
        "price": 7500000,
    }
    body.update(overrides)
    return body


@pytest.fixture
def seller(client: TestClient) -> dict:
    return login(client, "seller@example.com")


@pytest.fixture
def other_seller(client: TestClient) -> dict:
    return login(client, "rival@example.com")


@pytest.fixture
def buyer(client: TestClient) -> dict:
    return login(client, "buyer@example.com", role="buyer")


@pytest.fixture
def create_property(client: TestClient, seller: dict):
    """Factory creating a property as ``seller`` and returning its JSON."""

    def _create(lat: float = 12.9, lng: float = 77.6, owner: dict = None, **overrides) -> dict:
        resp = client.post(
            "/api/v1/property",
            json=property_payload(lat, lng, **overrides),
            headers=(owner or seller)["headers"],
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"][0]

    return _create
