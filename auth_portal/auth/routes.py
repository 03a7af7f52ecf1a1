"""
Authentication routes.

Session endpoints (check, token handoff, logout) and the server-side
credential endpoints that forward to the auth backend. Tokens only ever
travel in HTTP-only cookies; no endpoint returns them in a body.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..config import Settings
from ..logging_utils import flow_id, mask_email, mask_token
from ..models import (
    AuthResult,
    EmailRequest,
    ErrorResponse,
    ResetPasswordRequest,
    SessionResponse,
    SessionUser,
    SignInRequest,
    SignUpRequest,
    VerifyCodeRequest,
)
from ..security.redirects import is_relative_path, normalize_origin, validate_redirect
from ..sso.products import launch_url
from .dependencies import get_app_settings, get_auth_gateway, get_session_store
from .gateway import AuthGateway
from .session import SessionStore
from .tokens import decode_token, profile_from_claims

logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    tags=["authentication"],
)


# =============================================================================
# Helpers
# =============================================================================

def resolve_post_sign_in_redirect(hint: Optional[str], settings: Settings) -> str:
    """
    Where the browser goes once tokens are stored.

    A same-origin hint is used as-is; a product URL goes through the launch
    endpoint so the product receives a one-time code; anything else lands on
    the dashboard.
    """
    target = validate_redirect(hint, settings.allowed_app_origins_list, settings.app_origin)
    if not target:
        return settings.DASHBOARD_PATH
    if is_relative_path(target):
        return target
    if normalize_origin(target) == normalize_origin(settings.app_origin):
        return target
    return launch_url(target)


def result_response(
    result: AuthResult,
    success_status: int = status.HTTP_200_OK,
    success_message: Optional[str] = None,
) -> JSONResponse:
    """
    Translate a gateway result into the JSON returned to the browser.

    Backend 4xx statuses are passed through; unreachable or failing backends
    become 502 (503 when the backend URL is not configured).
    """
    if result.success:
        content: Dict[str, Any] = {
            "success": True,
            "message": result.message or success_message,
        }
        if result.data is not None:
            content["data"] = result.data
        return JSONResponse(status_code=success_status, content=content)

    if result.error_class == "NOT_CONFIGURED":
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif result.status_code and 400 <= result.status_code < 500:
        code = result.status_code
    else:
        code = status.HTTP_502_BAD_GATEWAY

    return JSONResponse(
        status_code=code,
        content={"success": False, "message": result.message or "Request failed"},
    )


# =============================================================================
# Session Endpoints
# =============================================================================

@auth_router.get(
    "/api/auth/session",
    response_model=SessionResponse,
    response_model_exclude_none=True,
)
async def session(
    request: Request,
    response: Response,
    gateway: AuthGateway = Depends(get_auth_gateway),
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """
    Report whether the browser has a usable session, refreshing it silently
    when the access token has expired and a refresh token is available.
    """
    check = await store.check(request, response, gateway)
    response.status_code = check.status_code
    return check.body


@auth_router.post("/api/auth/set-token", responses={400: {"model": ErrorResponse}})
async def set_token(
    request: Request,
    body: Optional[Dict[str, Any]] = Body(None),
    settings: Settings = Depends(get_app_settings),
    store: SessionStore = Depends(get_session_store),
):
    """
    Store tokens obtained by the browser in HTTP-only cookies.

    Body:
        token: Access token (required, string)
        refreshToken: Refresh token (optional)

    Returns:
        {success, redirect}; redirect consumes the captured redirect hint.
    """
    body = body or {}
    token = body.get("token")
    refresh_token = body.get("refreshToken")

    if not token or not isinstance(token, str):
        logger.warning(
            "Missing or invalid token in set-token request",
            extra={"token_type": type(token).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing or invalid token"},
        )

    if not isinstance(refresh_token, str):
        refresh_token = None

    redirect = resolve_post_sign_in_redirect(store.read_redirect_hint(request), settings)

    response = JSONResponse(content={"success": True, "redirect": redirect})
    store.set_tokens(response, token, refresh_token)
    store.clear_redirect_hint(response)

    logger.info(
        "Tokens stored in cookies",
        extra={
            "access_token": mask_token(token),
            "has_refresh_token": refresh_token is not None,
            "decodable": decode_token(token) is not None,
        },
    )
    return response


@auth_router.post("/api/logout")
async def logout(store: SessionStore = Depends(get_session_store)):
    """Clear the session cookies."""
    response = JSONResponse(content={"success": True})
    store.clear(response)
    logger.info("User logged out")
    return response


@auth_router.get("/api/logout")
async def logout_redirect(
    settings: Settings = Depends(get_app_settings),
    store: SessionStore = Depends(get_session_store),
):
    """Clear the session cookies and go to sign-in."""
    response = RedirectResponse(url=settings.SIGN_IN_PATH, status_code=status.HTTP_302_FOUND)
    store.clear(response)
    logger.info("User logged out")
    return response


@auth_router.get("/sso/logout")
async def sso_logout(
    redirect: Optional[str] = Query(None),
    callbackUrl: Optional[str] = Query(None),
    redirect_uri: Optional[str] = Query(None),
    settings: Settings = Depends(get_app_settings),
    store: SessionStore = Depends(get_session_store),
):
    """
    Global logout entry point for products.

    Clears every session cookie, including names from older session schemes,
    and sends the browser to sign-in with a forced login prompt. The return
    target is kept only if it passes redirect validation.
    """
    requested = redirect or callbackUrl or redirect_uri
    accepted = validate_redirect(requested, settings.allowed_app_origins_list, settings.app_origin)

    location = f"{settings.SIGN_IN_PATH}?{urlencode({'prompt': 'login', 'redirect': accepted or '/'})}"
    response = RedirectResponse(url=location, status_code=status.HTTP_302_FOUND)
    store.clear(response)

    logger.info(
        "SSO logout",
        extra={"requested": bool(requested), "redirect_accepted": accepted is not None},
    )
    return response


# =============================================================================
# Credential Endpoints
# =============================================================================

@auth_router.post("/api/auth/sign-in")
async def sign_in(
    request: Request,
    credentials: SignInRequest,
    settings: Settings = Depends(get_app_settings),
    gateway: AuthGateway = Depends(get_auth_gateway),
    store: SessionStore = Depends(get_session_store),
):
    """
    Verify credentials with the backend and start a session.

    Returns:
        {success, user, redirect} with the session cookies set, or 401 with
        the backend's message.
    """
    flow = flow_id()
    logger.info("Sign-in attempt", extra={"flow": flow, "email": mask_email(credentials.email)})

    result = await gateway.sign_in(credentials.email, credentials.password)

    if not result.success:
        logger.warning(
            "Sign-in failed",
            extra={"flow": flow, "error_class": result.error_class},
        )
        response = JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": result.message or "Unable to sign in"},
        )
        store.clear(response)
        return response

    access_token = result.data["accessToken"]
    claims = decode_token(access_token)
    profile = profile_from_claims(claims) if claims else result.data["profile"]
    redirect = resolve_post_sign_in_redirect(store.read_redirect_hint(request), settings)

    response = JSONResponse(
        content={
            "success": True,
            "user": SessionUser(**profile).model_dump(),
            "redirect": redirect,
        }
    )
    store.set_tokens(response, access_token, result.data.get("refreshToken"))
    store.clear_redirect_hint(response)

    logger.info("Sign-in complete", extra={"flow": flow, "redirect": redirect})
    return response


@auth_router.post("/api/sign-up")
async def sign_up(
    payload: SignUpRequest,
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    """Create an account with the backend."""
    result = await gateway.sign_up(payload.to_backend_payload())
    return result_response(result, status.HTTP_201_CREATED, "Account created successfully")


@auth_router.post("/api/request-verification-code")
async def request_verification_code(
    payload: EmailRequest,
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    """Ask the backend to email a verification code."""
    return result_response(await gateway.request_otp(payload.email))


@auth_router.post("/api/verify-code")
async def verify_code(
    payload: VerifyCodeRequest,
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    return result_response(await gateway.verify_otp(payload.email, payload.code))


@auth_router.post("/api/forgot-password")
async def forgot_password(
    payload: EmailRequest,
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    """Ask the backend to email a password reset code."""
    return result_response(await gateway.request_password_reset(payload.email))


@auth_router.post("/api/reset-password")
async def reset_password(
    payload: ResetPasswordRequest,
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    return result_response(await gateway.reset_password_with_code(payload.resetCode, payload.newPassword))
