"""
SSO Launch Handshake
====================

Hands a signed-in user off to a downstream product without putting a bearer
token in a URL:

    1. validate the product URL against the origin allow-list
    2. ask the auth backend for a one-time authorization code
    3. redirect to {productOrigin}/auth/callback?code=...&redirect=...

The product exchanges the code for tokens server-to-server. Any failure
falls back to a local page (dashboard or sign-in); backend detail never
reaches the browser.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit

from fastapi import status

from ..auth.gateway import AuthGateway
from ..config import Settings
from ..logging_utils import flow_id, mask_token, start_timer
from ..security.redirects import is_relative_path, normalize_origin, validate_redirect

logger = logging.getLogger(__name__)


@dataclass
class LaunchResult:
    """
    Outcome of a launch attempt.

    Either `location` is set (a redirect) or `error` is set (a JSON error
    with `status_code`).
    """
    status_code: int
    location: Optional[str] = None
    error: Optional[str] = None
    consumed_hint: bool = False


def landing_path(
    product_url: str,
    redirect_hint: Optional[str],
    settings: Settings,
) -> str:
    """
    Pick the path the product should open after its callback.

    Order: a `redirect` parameter embedded in the product URL, the product
    URL's own path and query when not the root, a same-origin redirect hint,
    then "/". Anything that is not a single-slash relative path becomes "/".
    """
    try:
        parts = urlsplit(product_url)
    except ValueError:
        return "/"

    embedded = parse_qs(parts.query).get("redirect")
    if embedded:
        candidate = embedded[0]
    elif parts.path not in ("", "/"):
        candidate = parts.path + (f"?{parts.query}" if parts.query else "")
    else:
        candidate = None
        hint = validate_redirect(redirect_hint, settings.allowed_app_origins_list, settings.app_origin)
        if is_relative_path(hint):
            candidate = hint

    return candidate if is_relative_path(candidate) else "/"


class SsoLauncher:
    """
    Runs the launch handshake.

    Args:
        settings: Application settings (allow-list, public URL, routes)
        gateway: Auth backend gateway used to mint authorization codes
    """

    def __init__(self, settings: Settings, gateway: AuthGateway):
        self.settings = settings
        self.gateway = gateway

    @property
    def sign_in_redirect(self) -> str:
        return f"{self.settings.sign_in_url}?prompt=login"

    async def launch(
        self,
        product_url: Optional[str],
        redirect_hint: Optional[str],
        access_token: Optional[str],
    ) -> LaunchResult:
        """
        Build the redirect for GET /api/auth/launch.

        Args:
            product_url: Product page or callback URL (the `url` parameter)
            redirect_hint: Previously captured redirect target, if any
            access_token: Access token from the session cookie

        Returns:
            LaunchResult describing the response to send.
        """
        flow = flow_id()

        if not product_url:
            logger.warning("Launch requested without url parameter", extra={"flow": flow})
            return LaunchResult(
                status_code=status.HTTP_400_BAD_REQUEST,
                error="Missing url parameter",
            )

        landing = landing_path(product_url, redirect_hint, self.settings)

        safe_url = validate_redirect(
            product_url,
            self.settings.allowed_app_origins_list,
            self.settings.app_origin,
        )
        product_origin = normalize_origin(safe_url) if safe_url else None
        if product_origin is None:
            logger.warning(
                "Launch target not allowed; falling back to dashboard",
                extra={"flow": flow},
            )
            return LaunchResult(
                status_code=status.HTTP_302_FOUND,
                location=self.settings.DASHBOARD_PATH,
            )

        if not access_token:
            logger.info("Launch without session; redirecting to sign-in", extra={"flow": flow})
            return LaunchResult(status_code=status.HTTP_302_FOUND, location=self.sign_in_redirect)

        logger.info(
            "Requesting authorization code",
            extra={
                "flow": flow,
                "product_origin": product_origin,
                "landing": landing,
                "access_token": mask_token(access_token),
            },
        )

        elapsed = start_timer()
        result = await self.gateway.authorize(access_token)
        code = (result.data or {}).get("code") if result.success else None

        if not code:
            logger.error(
                "Authorization code request failed",
                extra={
                    "flow": flow,
                    "error_class": result.error_class,
                    "elapsed_ms": elapsed(),
                },
            )
            return LaunchResult(status_code=status.HTTP_302_FOUND, location=self.sign_in_redirect)

        query = urlencode({"code": code, "redirect": landing}, safe="/")
        logger.info(
            "Redirecting to product callback",
            extra={"flow": flow, "product_origin": product_origin, "elapsed_ms": elapsed()},
        )
        return LaunchResult(
            status_code=status.HTTP_302_FOUND,
            location=f"{product_origin}/auth/callback?{query}",
            consumed_hint=True,
        )
