"""
Route gating middleware.

Every request path is classified before it reaches a handler:

    public     pass through
    auth-only  sign-in / sign-up; users who already have a session are sent
               to the dashboard unless they came with a redirect target or
               an explicit prompt=login
    protected  everything else; no session means a trip to sign-in with the
               original path kept in `redirect`

The gate only looks at cookies. It never calls the backend; refresh happens
later through the session endpoint.
"""

import logging
from enum import Enum
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.session import SessionState, SessionStore
from ..config import Settings
from .redirects import validate_redirect

logger = logging.getLogger(__name__)


class RouteKind(str, Enum):
    PUBLIC = "public"
    AUTH_ONLY = "auth-only"
    PROTECTED = "protected"


PUBLIC_PATHS = frozenset({
    "/",
    "/forgot-password",
    "/forgot-password/verify",
    "/forgot-password/reset",
    "/forgot-password/success",
    "/register",
    "/sso/logout",
    "/health",
    "/docs",
    "/docs/oauth2-redirect",
    "/redoc",
    "/openapi.json",
})

AUTH_ONLY_PATHS = frozenset({"/sign-in", "/sign-up"})


def classify_path(path: str) -> RouteKind:
    """Classify a request path as public, auth-only or protected."""
    if path == "/api" or path.startswith("/api/"):
        return RouteKind.PUBLIC

    normalized = path.rstrip("/") or "/"
    if normalized in PUBLIC_PATHS:
        return RouteKind.PUBLIC
    if normalized in AUTH_ONLY_PATHS:
        return RouteKind.AUTH_ONLY
    return RouteKind.PROTECTED


class RouteGateMiddleware(BaseHTTPMiddleware):
    """
    Redirects requests according to their route kind and session.

    Args:
        app: ASGI application
        settings: Application settings (routes, cookie names, allow-list)
    """

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings
        self.store = SessionStore(settings)

    async def dispatch(self, request: Request, call_next):
        kind = classify_path(request.url.path)

        if kind is RouteKind.AUTH_ONLY:
            return await self._auth_only(request, call_next)

        if kind is RouteKind.PROTECTED:
            if self.store.state_of(request) is SessionState.UNAUTHENTICATED:
                original = request.url.path
                if request.url.query:
                    original += f"?{request.url.query}"
                location = f"{self.settings.SIGN_IN_PATH}?{urlencode({'redirect': original}, safe='/')}"
                logger.debug("No session for protected route", extra={"path": request.url.path})
                return RedirectResponse(url=location, status_code=302)

        return await call_next(request)

    async def _auth_only(self, request: Request, call_next):
        redirect = request.query_params.get("redirect")
        forced_login = request.query_params.get("prompt") == "login"

        if not redirect and not forced_login and self.store.valid_access_token(request):
            return RedirectResponse(url=self.settings.DASHBOARD_PATH, status_code=302)

        response = await call_next(request)

        target = validate_redirect(
            redirect,
            self.settings.allowed_app_origins_list,
            self.settings.app_origin,
        )
        if target:
            self.store.set_redirect_hint(response, target)
        return response
