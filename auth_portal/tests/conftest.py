"""
Shared fixtures for auth portal tests.

The auth backend is faked with httpx.MockTransport so the real gateway code
(request building, error classification, payload normalization) runs in
every route test.
"""

import time
from http.cookies import SimpleCookie
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from auth_portal.auth.gateway import AuthGateway
from auth_portal.config import Settings
from auth_portal.main import create_app

AUTH_API_URL = "https://api.auth.example.com"
APP_PUBLIC_URL = "https://auth.example.com"
PRODUCT_ORIGIN = "https://products.example.com"
CSRF_TOKEN = "test-csrf-token"

TEST_SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


def make_token(exp_delta: Optional[int] = 3600, now: Optional[float] = None, **claims: Any) -> str:
    """
    Mint an access token the way the backend would.

    Args:
        exp_delta: Seconds until expiry; None omits the exp claim
        now: Reference time (defaults to time.time())
        **claims: Extra or overriding payload claims
    """
    current = int(time.time() if now is None else now)
    payload = {
        "id": "user-123",
        "email": "jane@example.com",
        "firstName": "Jane",
        "lastName": "Doe",
        "displayPicture": None,
        "userType": "USER",
        "phone": "+15550100",
        "iat": current,
    }
    if exp_delta is not None:
        payload["exp"] = current + exp_delta
    payload.update(claims)
    return jwt.encode(payload, TEST_SIGNING_KEY, algorithm="HS256")


Reply = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response], Exception]


class FakeBackend:
    """
    Scripted auth backend.

    Replies are registered per path as (status, json_body), as a callable
    returning an httpx.Response, or as an exception to raise. Every request
    is recorded.
    """

    def __init__(self):
        self.replies: Dict[str, Reply] = {}
        self.requests: List[httpx.Request] = []

    def reply(self, path: str, status_code: int = 200, json: Any = None) -> None:
        self.replies[path] = (status_code, json)

    def fail(self, path: str, error: Exception) -> None:
        self.replies[path] = error

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.get(request.url.path)
        if reply is None:
            return httpx.Response(404, json={"message": "Not found"})
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        status_code, body = reply
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    def gateway(self) -> AuthGateway:
        client = httpx.AsyncClient(
            base_url=AUTH_API_URL,
            transport=httpx.MockTransport(self.handler),
        )
        return AuthGateway(client, timeout=5.0, signup_timeout=5.0)


def set_cookies(response) -> Dict[str, Any]:
    """
    Parse every Set-Cookie header of a response into morsels by name.

    Works on both Starlette responses and httpx responses from TestClient;
    only the raw header list is common to the two.
    """
    morsels = {}
    for key, value in response.headers.raw:
        if key.lower() != b"set-cookie":
            continue
        jar = SimpleCookie()
        jar.load(value.decode("latin-1"))
        for name, morsel in jar.items():
            morsels[name] = morsel
    return morsels


def is_cleared(morsel) -> bool:
    return morsel.value == "" and str(morsel["max-age"]) == "0"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        AUTH_API_URL=AUTH_API_URL,
        APP_PUBLIC_URL=APP_PUBLIC_URL,
        ALLOWED_APP_ORIGINS=PRODUCT_ORIGIN,
        ENVIRONMENT="development",
        PRODUCTS=[
            {"id": "orders", "name": "Orders", "url": f"{PRODUCT_ORIGIN}/orders", "icon": "calendar"},
            {"id": "wallet", "name": "Wallet", "url": "https://wallet.example.com", "icon": "wallet"},
            {"id": "store", "name": "Store", "url": PRODUCT_ORIGIN, "icon": "shopping-bag", "active": False},
        ],
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def app(settings, backend):
    return create_app(settings, auth_gateway=backend.gateway())


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, base_url=APP_PUBLIC_URL)


@pytest.fixture
def csrf_headers(client) -> Dict[str, str]:
    """Give the client a CSRF cookie and return the matching header."""
    client.cookies.set("csrf_token", CSRF_TOKEN)
    return {"X-CSRF-Token": CSRF_TOKEN}
