"""
Cookie Session Management Module
================================

The browser session is the pair of bearer tokens issued by the auth backend,
held in HTTP-only cookies, plus a script-readable `logged_in` flag. This
module owns every read and write of those cookies.

Session states:
---------------
    UNAUTHENTICATED  no usable access token and no refresh token
    AUTHENTICATED    access token present and unexpired
    EXPIRING         access token missing or expired, refresh token present
    REFRESHING       refresh request in flight

A refresh either replaces the cookies together or clears all of them; a
stale access token is never left beside a new refresh token.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from fastapi import Request, Response, status

from ..config import (
    ACCESS_TOKEN_DEFAULT_MAX_AGE,
    SESSION_COOKIE_MAX_AGE,
    Settings,
)
from ..logging_utils import mask_token
from ..models import SessionResponse, SessionUser
from .gateway import AuthGateway
from .tokens import decode_token, get_expiry, is_expired, profile_from_claims

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    EXPIRING = "expiring"
    REFRESHING = "refreshing"


@dataclass
class SessionCheck:
    """Outcome of a session check: final state, HTTP status and body."""
    state: SessionState
    status_code: int
    body: SessionResponse


class SessionStore:
    """
    Reads, writes, refreshes and clears the session cookies.

    Args:
        settings: Application settings (cookie names, environment)
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    # =========================================================================
    # Reading
    # =========================================================================

    def read_tokens(self, request: Request) -> Tuple[Optional[str], Optional[str]]:
        """Return (access_token, refresh_token) from cookies; blank counts as absent."""
        access = request.cookies.get(self.settings.ACCESS_COOKIE_NAME) or None
        refresh = request.cookies.get(self.settings.REFRESH_COOKIE_NAME) or None
        return access, refresh

    def valid_access_token(self, request: Request, now: Optional[float] = None) -> Optional[str]:
        """The access token if it decodes and is unexpired, else None."""
        access, _ = self.read_tokens(request)
        if access and not is_expired(access, now):
            return access
        return None

    def state_of(self, request: Request, now: Optional[float] = None) -> SessionState:
        """Classify the request's session without contacting the backend."""
        access, refresh = self.read_tokens(request)
        if access and not is_expired(access, now):
            return SessionState.AUTHENTICATED
        if refresh:
            return SessionState.EXPIRING
        return SessionState.UNAUTHENTICATED

    # =========================================================================
    # Writing
    # =========================================================================

    @staticmethod
    def access_max_age(token: str, now: Optional[float] = None) -> int:
        """
        Cookie lifetime for an access token, derived from its `exp` claim.

        Returns:
            exp - now clamped to [0, 7 days], or 1 hour when the token
            carries no expiry.
        """
        exp = get_expiry(decode_token(token))
        if exp is None:
            return ACCESS_TOKEN_DEFAULT_MAX_AGE

        current = int(time.time() if now is None else now)
        return max(0, min(exp - current, SESSION_COOKIE_MAX_AGE))

    def _set_cookie(self, response: Response, name: str, value: str, max_age: int, httponly: bool = True) -> None:
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            path="/",
            httponly=httponly,
            secure=self.settings.is_production,
            samesite="lax",
        )

    def set_tokens(
        self,
        response: Response,
        access_token: str,
        refresh_token: Optional[str] = None,
        now: Optional[float] = None,
    ) -> None:
        """
        Persist a token pair and the logged-in flag on the response.

        Args:
            response: Outgoing response
            access_token: Access token; cookie lifetime follows its `exp`
            refresh_token: Refresh token, 7-day cookie; the cookie is
                expired when None
            now: Current time in seconds (defaults to time.time())
        """
        self._set_cookie(
            response,
            self.settings.ACCESS_COOKIE_NAME,
            access_token,
            self.access_max_age(access_token, now),
        )
        if refresh_token:
            self._set_cookie(
                response,
                self.settings.REFRESH_COOKIE_NAME,
                refresh_token,
                SESSION_COOKIE_MAX_AGE,
            )
        else:
            # A refresh token left over from an earlier session must not
            # outlive the access token it belonged with.
            self._set_cookie(response, self.settings.REFRESH_COOKIE_NAME, "", 0)
        self._set_cookie(
            response,
            self.settings.LOGGED_IN_COOKIE_NAME,
            "1",
            SESSION_COOKIE_MAX_AGE,
            httponly=False,
        )

    def session_cookie_names(self) -> List[str]:
        return [
            self.settings.ACCESS_COOKIE_NAME,
            self.settings.REFRESH_COOKIE_NAME,
            self.settings.LOGGED_IN_COOKIE_NAME,
            *self.settings.legacy_cookie_names_list,
        ]

    def clear(self, response: Response) -> None:
        """Expire the access, refresh, logged-in and legacy cookies. Idempotent."""
        for name in self.session_cookie_names():
            self._set_cookie(
                response,
                name,
                "",
                0,
                httponly=name != self.settings.LOGGED_IN_COOKIE_NAME,
            )

    # =========================================================================
    # Redirect hint
    # =========================================================================

    def read_redirect_hint(self, request: Request) -> Optional[str]:
        return request.cookies.get(self.settings.REDIRECT_HINT_COOKIE_NAME) or None

    def set_redirect_hint(self, response: Response, target: str) -> None:
        """Remember a validated redirect target for the rest of the browser session."""
        response.set_cookie(
            key=self.settings.REDIRECT_HINT_COOKIE_NAME,
            value=target,
            path="/",
            httponly=True,
            secure=self.settings.is_production,
            samesite="lax",
        )

    def clear_redirect_hint(self, response: Response) -> None:
        self._set_cookie(response, self.settings.REDIRECT_HINT_COOKIE_NAME, "", 0)

    # =========================================================================
    # Check / Refresh
    # =========================================================================

    async def check(
        self,
        request: Request,
        response: Response,
        gateway: AuthGateway,
        now: Optional[float] = None,
    ) -> SessionCheck:
        """
        Resolve the request's session, refreshing it when the access token
        is missing or expired and a refresh token is available.

        Cookie mutations (refresh or clear) are applied to `response`.
        """
        access, refresh = self.read_tokens(request)

        if not access and not refresh:
            return _unauthenticated()

        if access and not is_expired(access, now):
            return _authenticated(decode_token(access))

        if refresh:
            return await self.refresh(response, refresh, gateway, now)

        logger.info("Access token expired with no refresh token; clearing session")
        self.clear(response)
        return _unauthenticated(reason="expired")

    async def refresh(
        self,
        response: Response,
        refresh_token: str,
        gateway: AuthGateway,
        now: Optional[float] = None,
    ) -> SessionCheck:
        """
        Exchange the refresh token for a new access token.

        On success both token cookies and the logged-in flag are rewritten.
        On any failure every session cookie is cleared. No retry.
        """
        logger.info(
            "Refreshing session",
            extra={"state": SessionState.REFRESHING.value, "refresh_token": mask_token(refresh_token)},
        )

        result = await gateway.refresh(refresh_token)
        new_access = (result.data or {}).get("accessToken") if result.success else None
        claims = decode_token(new_access)

        if not result.success or claims is None:
            logger.warning(
                "Session refresh failed; clearing session",
                extra={"error_class": result.error_class or "MALFORMED_RESPONSE"},
            )
            self.clear(response)
            return _unauthenticated(reason="refresh_failed")

        rotated = result.data.get("refreshToken") or refresh_token
        self.set_tokens(response, new_access, rotated, now)

        logger.info(
            "Session refreshed",
            extra={"user_id": claims.get("id"), "rotated": rotated != refresh_token},
        )
        return _authenticated(claims)


def _authenticated(claims) -> SessionCheck:
    return SessionCheck(
        state=SessionState.AUTHENTICATED,
        status_code=status.HTTP_200_OK,
        body=SessionResponse(
            authenticated=True,
            user=SessionUser(**profile_from_claims(claims or {})),
        ),
    )


def _unauthenticated(reason: Optional[str] = None) -> SessionCheck:
    return SessionCheck(
        state=SessionState.UNAUTHENTICATED,
        status_code=status.HTTP_401_UNAUTHORIZED,
        body=SessionResponse(authenticated=False, reason=reason),
    )
