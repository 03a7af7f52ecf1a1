"""
CSRF Protection
===============

Double-submit cookie check for state-changing API calls. The token lives in a
script-readable cookie; the page copies it into the X-CSRF-Token header. A
cross-site form post carries the cookie but cannot read it to set the header.

Rules:
------
- GET, HEAD and OPTIONS are never checked.
- Only /api/ paths are checked; pages are not.
- /api/auth/set-token is exempt (called during the sign-in handoff, before
  the page has had a chance to read the cookie).
- A rejected request gets 403 and no cookie changes. Every other response
  carries the cookie, reusing the existing token with a sliding lifetime.
"""

import logging
import secrets
from typing import Optional

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import CSRF_COOKIE_MAX_AGE, Settings

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
EXEMPT_PATHS = frozenset({"/api/auth/set-token"})


def generate_csrf_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


class CsrfGuard:
    """
    Issues and validates CSRF tokens.

    Args:
        settings: Application settings (cookie and header names)
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def requires_check(self, method: str, path: str) -> bool:
        if method.upper() in SAFE_METHODS:
            return False
        if not path.startswith("/api/"):
            return False
        return path not in EXEMPT_PATHS

    def validate(self, request: Request) -> bool:
        """
        Check the request's cookie token against its header token.

        Returns:
            True if the request is exempt or both tokens are present and equal.
        """
        if not self.requires_check(request.method, request.url.path):
            return True

        cookie_token = request.cookies.get(self.settings.CSRF_COOKIE_NAME)
        header_token = request.headers.get(self.settings.CSRF_HEADER_NAME)
        if not cookie_token or not header_token:
            return False

        return secrets.compare_digest(cookie_token.encode(), header_token.encode())

    def issue(self, response: Response, existing: Optional[str] = None) -> str:
        """
        Set the CSRF cookie on a response.

        Args:
            response: Outgoing response
            existing: Token already held by the browser, reused when present

        Returns:
            The token that was set.
        """
        token = existing or generate_csrf_token()
        response.set_cookie(
            key=self.settings.CSRF_COOKIE_NAME,
            value=token,
            max_age=CSRF_COOKIE_MAX_AGE,
            path="/",
            httponly=False,
            secure=self.settings.is_production,
            samesite="lax",
        )
        return token


class CsrfMiddleware(BaseHTTPMiddleware):
    """Applies CsrfGuard to every request."""

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.guard = CsrfGuard(settings)
        self.cookie_name = settings.CSRF_COOKIE_NAME

    async def dispatch(self, request: Request, call_next):
        if not self.guard.validate(request):
            logger.warning(
                "CSRF validation failed",
                extra={"path": request.url.path, "method": request.method},
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"error": "CSRF token validation failed"},
            )

        response = await call_next(request)
        self.guard.issue(response, request.cookies.get(self.cookie_name))
        return response
