"""
Auth backend gateway tests.

Exercises the real AuthGateway against an httpx.MockTransport backend.
"""

import json

import httpx
import pytest

from auth_portal.auth.gateway import AuthGateway

from .conftest import AUTH_API_URL, FakeBackend


@pytest.fixture
def gateway(backend: FakeBackend) -> AuthGateway:
    return backend.gateway()


# ============================================================================
# sign_in
# ============================================================================

class TestSignIn:

    @pytest.mark.asyncio
    async def test_normalizes_payload(self, gateway, backend):
        backend.reply("/auth/signin", 200, {
            "message": "Login successful",
            "data": {
                "id": 7,
                "email": "jane@example.com",
                "username": "Jane Van Doe",
                "accessToken": "access-1",
                "refreshToken": "refresh-1",
            },
        })

        result = await gateway.sign_in("jane@example.com", "Secret123")

        assert result.success is True
        assert result.data["accessToken"] == "access-1"
        assert result.data["refreshToken"] == "refresh-1"
        profile = result.data["profile"]
        assert profile["firstName"] == "Jane"
        assert profile["lastName"] == "Van Doe"
        assert profile["userType"] == "USER"

        sent = backend.calls("/auth/signin")[0]
        assert str(sent.url) == f"{AUTH_API_URL}/auth/signin"
        assert json.loads(sent.content) == {"email": "jane@example.com", "password": "Secret123"}

    @pytest.mark.asyncio
    async def test_accepts_token_field(self, gateway, backend):
        backend.reply("/auth/signin", 200, {"data": {"token": "access-2", "firstName": "A", "lastName": "B"}})

        result = await gateway.sign_in("a@b.com", "x")

        assert result.success is True
        assert result.data["accessToken"] == "access-2"
        assert result.data["refreshToken"] is None

    @pytest.mark.asyncio
    async def test_missing_access_token_is_failure(self, gateway, backend):
        backend.reply("/auth/signin", 200, {"data": {"id": 1}})

        result = await gateway.sign_in("a@b.com", "x")

        assert result.success is False
        assert result.error_class == "MALFORMED_RESPONSE"

    @pytest.mark.asyncio
    async def test_missing_data_is_failure(self, gateway, backend):
        backend.reply("/auth/signin", 200, {"message": "ok"})

        result = await gateway.sign_in("a@b.com", "x")

        assert result.success is False
        assert result.error_class == "MALFORMED_RESPONSE"

    @pytest.mark.asyncio
    async def test_backend_message_passed_through(self, gateway, backend):
        backend.reply("/auth/signin", 401, {"message": "Invalid credentials"})

        result = await gateway.sign_in("a@b.com", "x")

        assert result.success is False
        assert result.status_code == 401
        assert result.error_class == "HTTP_401"
        assert result.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_list_messages_are_joined(self, gateway, backend):
        backend.reply("/auth/signin", 400, {"message": ["email must be an email", "password is empty"]})

        result = await gateway.sign_in("a@b.com", "x")

        assert result.message == "email must be an email, password is empty"


# ============================================================================
# Error classification
# ============================================================================

class TestErrorClassification:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, expected", [
        (httpx.ConnectTimeout("slow"), "TIMEOUT"),
        (httpx.ReadTimeout("slow"), "TIMEOUT"),
        (httpx.ConnectError("refused"), "CONNECTION_REFUSED"),
        (httpx.ReadError("reset"), "NETWORK_ERROR"),
        (httpx.RemoteProtocolError("bad"), "NETWORK_ERROR"),
    ])
    async def test_transport_errors(self, gateway, backend, error, expected):
        backend.fail("/auth/signin", error)

        result = await gateway.sign_in("a@b.com", "x")

        assert result.success is False
        assert result.error_class == expected
        assert result.status_code is None

    @pytest.mark.asyncio
    async def test_server_error_status(self, gateway, backend):
        backend.reply("/auth/refresh", 503)

        result = await gateway.refresh("r")

        assert result.success is False
        assert result.error_class == "HTTP_503"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        gateway = AuthGateway(None)

        result = await gateway.authorize("token")

        assert result.success is False
        assert result.error_class == "NOT_CONFIGURED"

    def test_from_settings_without_url(self, settings):
        gateway = AuthGateway.from_settings(settings.model_copy(update={"AUTH_API_URL": None}))
        assert gateway._client is None


# ============================================================================
# refresh / authorize
# ============================================================================

class TestSessionOperations:

    @pytest.mark.asyncio
    async def test_refresh_rotated(self, gateway, backend):
        backend.reply("/auth/refresh", 200, {"accessToken": "a2", "refreshToken": "r2"})

        result = await gateway.refresh("r1")

        assert result.data == {"accessToken": "a2", "refreshToken": "r2"}

    @pytest.mark.asyncio
    async def test_refresh_missing_access_token(self, gateway, backend):
        backend.reply("/auth/refresh", 200, {"refreshToken": "r2"})

        result = await gateway.refresh("r1")

        assert result.success is False
        assert result.error_class == "MALFORMED_RESPONSE"

    @pytest.mark.asyncio
    async def test_authorize_sends_bearer_token(self, gateway, backend):
        backend.reply("/auth/authorize", 200, {"code": "one-time"})

        result = await gateway.authorize("access-1")

        assert result.data == {"code": "one-time"}
        sent = backend.calls("/auth/authorize")[0]
        assert sent.headers["Authorization"] == "Bearer access-1"

    @pytest.mark.asyncio
    async def test_authorize_without_code(self, gateway, backend):
        backend.reply("/auth/authorize", 200, {})

        result = await gateway.authorize("access-1")

        assert result.success is False
        assert result.error_class == "MALFORMED_RESPONSE"


# ============================================================================
# Account operations
# ============================================================================

class TestAccountOperations:

    @pytest.mark.asyncio
    async def test_sign_up_uses_longer_timeout(self, backend):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["timeout"] = request.extensions["timeout"]
            return httpx.Response(201, json={"data": {"id": 1}})

        backend.replies["/auth/signup"] = handler
        gateway = AuthGateway(
            httpx.AsyncClient(base_url=AUTH_API_URL, transport=httpx.MockTransport(backend.handler)),
            timeout=10.0,
            signup_timeout=15.0,
        )

        result = await gateway.sign_up({"email": "a@b.com"})

        assert result.success is True
        assert result.data == {"id": 1}
        assert seen["timeout"]["read"] == 15.0

    @pytest.mark.asyncio
    async def test_verify_otp(self, gateway, backend):
        backend.reply("/auth/verify-email-code", 200, {"message": "Verified"})

        result = await gateway.verify_otp("a@b.com", "123456")

        assert result.success is True
        assert result.message == "Verified"
        assert json.loads(backend.calls("/auth/verify-email-code")[0].content) == {
            "email": "a@b.com",
            "code": "123456",
        }

    @pytest.mark.asyncio
    async def test_reset_password_payload(self, gateway, backend):
        backend.reply("/auth/reset-password", 200, {})

        result = await gateway.reset_password_with_code("  CODE123 ", "NewPass1")

        assert result.success is True
        assert result.message == "Password reset successfully"
        assert json.loads(backend.calls("/auth/reset-password")[0].content) == {
            "resetCode": "CODE123",
            "newPassword": "NewPass1",
            "confirmPassword": "NewPass1",
        }

    @pytest.mark.asyncio
    async def test_request_otp_failure_default_message(self, gateway, backend):
        backend.reply("/auth/request-verify-email-code", 500)

        result = await gateway.request_otp("a@b.com")

        assert result.success is False
        assert result.message == "Failed to send OTP"
