"""
Auth Backend Gateway
====================

Thin async client for the external authentication backend. The backend
verifies credentials, issues OTPs, resets passwords, rotates refresh tokens
and mints one-time SSO authorization codes; this module only carries requests
there and turns every outcome into an AuthResult.

Contract:
---------
- Every public coroutine returns an AuthResult; none raises.
- Timeouts, connection failures and non-2xx responses are failures,
  classified in `error_class` (TIMEOUT, CONNECTION_REFUSED, NETWORK_ERROR,
  HTTP_<status>, MALFORMED_RESPONSE, NOT_CONFIGURED).
- Backend messages are passed through as-is; nothing is added that would
  tell "wrong password" apart from "unknown user".
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..logging_utils import classify_error, mask_email, mask_token, start_timer
from ..models import AuthResult

logger = logging.getLogger(__name__)


class AuthGateway:
    """
    Client for the auth backend.

    Attributes:
        ENDPOINTS: Backend path per operation
    """

    ENDPOINTS = {
        "sign_in": "/auth/signin",
        "sign_up": "/auth/signup",
        "request_otp": "/auth/request-verify-email-code",
        "verify_otp": "/auth/verify-email-code",
        "request_password_reset": "/auth/send-reset-token",
        "reset_password": "/auth/reset-password",
        "refresh": "/auth/refresh",
        "authorize": "/auth/authorize",
    }

    def __init__(
        self,
        client: Optional[httpx.AsyncClient],
        timeout: float = 10.0,
        signup_timeout: float = 15.0,
    ):
        """
        Args:
            client: AsyncClient whose base_url is the backend, or None when
                    the backend URL is not configured
            timeout: Per-call timeout in seconds
            signup_timeout: Timeout for account creation
        """
        self._client = client
        self._timeout = timeout
        self._signup_timeout = signup_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthGateway":
        """Build a gateway with its own connection pool."""
        client = None
        if settings.auth_api_url_str:
            client = httpx.AsyncClient(
                base_url=settings.auth_api_url_str,
                headers={"Content-Type": "application/json"},
            )
        return cls(
            client,
            timeout=settings.AUTH_API_TIMEOUT_SECONDS,
            signup_timeout=settings.SIGNUP_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _post(
        self,
        operation: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        bearer: Optional[str] = None,
        timeout: Optional[float] = None,
        default_message: str = "Request failed",
    ) -> AuthResult:
        """
        POST to a backend endpoint and wrap the outcome.

        On success `data` holds the decoded JSON body (an empty dict when the
        body is empty or not an object).
        """
        if self._client is None:
            logger.error(
                "Auth backend URL not configured",
                extra={"operation": operation},
            )
            return AuthResult(
                success=False,
                message="Authentication service is not configured",
                error_class="NOT_CONFIGURED",
            )

        headers = {"Authorization": f"Bearer {bearer}"} if bearer else None
        elapsed = start_timer()

        try:
            response = await self._client.post(
                self.ENDPOINTS[operation],
                json=payload,
                headers=headers,
                timeout=timeout or self._timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error_class = classify_error(e)
            logger.error(
                f"Auth backend call failed: {operation}",
                extra={
                    "operation": operation,
                    "error_class": error_class,
                    "elapsed_ms": elapsed(),
                },
            )
            return AuthResult(
                success=False,
                message="Authentication service unavailable",
                error_class=error_class,
            )

        body = _json_body(response)
        message = _extract_message(body)

        logger.info(
            f"Auth backend responded: {operation}",
            extra={
                "operation": operation,
                "status_code": response.status_code,
                "elapsed_ms": elapsed(),
            },
        )

        if not response.is_success:
            return AuthResult(
                success=False,
                message=message or default_message,
                status_code=response.status_code,
                error_class=f"HTTP_{response.status_code}",
            )

        return AuthResult(
            success=True,
            data=body,
            message=message,
            status_code=response.status_code,
        )

    # =========================================================================
    # Credential Operations
    # =========================================================================

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """
        Verify credentials and obtain a token pair.

        Returns:
            On success, data = {accessToken, refreshToken, profile}.
        """
        logger.info("Sign-in requested", extra={"email": mask_email(email)})

        result = await self._post(
            "sign_in",
            {"email": email, "password": password},
            default_message="Unable to sign in",
        )
        if not result.success:
            return result

        payload = (result.data or {}).get("data")
        if not isinstance(payload, dict):
            logger.error("Malformed sign-in response: missing data field")
            return _malformed("Malformed response: missing data", result.status_code)

        nested = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        access_token = payload.get("accessToken") or payload.get("token") or nested.get("accessToken")
        if not access_token or not isinstance(access_token, str):
            logger.error(
                "Missing access token from backend",
                extra={"payload_keys": sorted(payload.keys())},
            )
            return _malformed("Missing access token from backend", result.status_code)

        first_name = payload.get("firstName") or ""
        last_name = payload.get("lastName") or ""
        username = payload.get("username")
        if (not first_name or not last_name) and isinstance(username, str):
            parts = username.strip().split(" ")
            first_name = first_name or parts[0]
            last_name = last_name or " ".join(parts[1:])

        refresh_token = payload.get("refreshToken")

        logger.info(
            "Sign-in successful",
            extra={
                "user_id": payload.get("id"),
                "email": mask_email(payload.get("email")),
                "access_token": mask_token(access_token),
                "has_refresh_token": bool(refresh_token),
            },
        )

        return AuthResult(
            success=True,
            status_code=result.status_code,
            message=result.message,
            data={
                "accessToken": access_token,
                "refreshToken": refresh_token if isinstance(refresh_token, str) else None,
                "profile": {
                    "id": payload.get("id"),
                    "email": payload.get("email"),
                    "firstName": first_name,
                    "lastName": last_name,
                    "displayPicture": payload.get("displayPicture"),
                    "userType": payload.get("userType") or "USER",
                    "permissions": payload.get("permissions"),
                },
            },
        )

    async def sign_up(self, payload: Dict[str, Any]) -> AuthResult:
        """Create an account. On success data = the created user record."""
        logger.info("Sign-up requested", extra={"email": mask_email(payload.get("email"))})

        result = await self._post(
            "sign_up",
            payload,
            timeout=self._signup_timeout,
            default_message="Failed to create account",
        )
        if result.success:
            body = result.data or {}
            result.data = body.get("data") or body.get("user")
            result.message = result.message or "Account created successfully"
        return result

    async def request_otp(self, email: str) -> AuthResult:
        result = await self._post(
            "request_otp",
            {"email": email},
            default_message="Failed to send OTP",
        )
        if result.success:
            result.data = None
            result.message = result.message or "OTP sent successfully"
        return result

    async def verify_otp(self, email: str, code: str) -> AuthResult:
        result = await self._post(
            "verify_otp",
            {"email": email, "code": code},
            default_message="Invalid or expired OTP",
        )
        if result.success:
            result.data = {"verified": True}
            result.message = result.message or "Email verified successfully"
        return result

    async def request_password_reset(self, email: str) -> AuthResult:
        logger.info("Password reset requested", extra={"email": mask_email(email)})

        result = await self._post(
            "request_password_reset",
            {"email": email},
            default_message="Failed to send password reset code",
        )
        if result.success:
            body = result.data or {}
            result.data = body.get("data") if isinstance(body.get("data"), dict) else None
            result.message = result.message or "Password reset code sent successfully"
        return result

    async def reset_password_with_code(self, reset_code: str, new_password: str) -> AuthResult:
        result = await self._post(
            "reset_password",
            {
                "resetCode": reset_code.strip(),
                "newPassword": new_password,
                "confirmPassword": new_password,
            },
            default_message="Failed to reset password",
        )
        if result.success:
            result.data = {"success": True}
            result.message = result.message or "Password reset successfully"
        return result

    # =========================================================================
    # Session Operations
    # =========================================================================

    async def refresh(self, refresh_token: str) -> AuthResult:
        """
        Exchange a refresh token for a new access token.

        Returns:
            On success, data = {accessToken, refreshToken}; refreshToken is
            None when the backend did not rotate it.
        """
        logger.info(
            "Token refresh requested",
            extra={"refresh_token": mask_token(refresh_token)},
        )

        result = await self._post(
            "refresh",
            {"refreshToken": refresh_token},
            default_message="Token refresh failed",
        )
        if not result.success:
            return result

        body = _unwrap(result.data)
        access_token = body.get("accessToken")
        if not access_token or not isinstance(access_token, str):
            return _malformed("Refresh response missing access token", result.status_code)

        rotated = body.get("refreshToken")
        return AuthResult(
            success=True,
            status_code=result.status_code,
            data={
                "accessToken": access_token,
                "refreshToken": rotated if isinstance(rotated, str) and rotated else None,
            },
        )

    async def authorize(self, access_token: str) -> AuthResult:
        """
        Mint a one-time SSO authorization code for the bearer of `access_token`.

        Returns:
            On success, data = {code}.
        """
        result = await self._post(
            "authorize",
            bearer=access_token,
            default_message="Authorization code request failed",
        )
        if not result.success:
            return result

        code = _unwrap(result.data).get("code")
        if not code:
            return _malformed("Authorization response missing code", result.status_code)

        return AuthResult(success=True, status_code=result.status_code, data={"code": str(code)})


# =============================================================================
# Helpers
# =============================================================================

def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _extract_message(body: Dict[str, Any]) -> Optional[str]:
    message = body.get("message")
    if isinstance(message, list):
        return ", ".join(str(m) for m in message)
    if isinstance(message, str):
        return message
    return None


def _unwrap(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Backends answer either {field: ...} or {data: {field: ...}}."""
    body = body or {}
    inner = body.get("data")
    return inner if isinstance(inner, dict) else body


def _malformed(message: str, status_code: Optional[int]) -> AuthResult:
    return AuthResult(
        success=False,
        message=message,
        status_code=status_code,
        error_class="MALFORMED_RESPONSE",
    )
