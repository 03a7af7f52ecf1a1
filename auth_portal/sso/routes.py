"""
SSO routes: product launch and catalog.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ..auth.dependencies import get_app_settings, get_auth_gateway, get_session_store
from ..auth.gateway import AuthGateway
from ..auth.session import SessionStore
from ..config import Settings
from ..models import ErrorResponse, ProductEntry
from .launcher import SsoLauncher
from .products import list_products


# =============================================================================
# Router Setup
# =============================================================================

sso_router = APIRouter(
    prefix="/api",
    tags=["sso"],
)


# =============================================================================
# Launch Endpoint
# =============================================================================

@sso_router.get("/auth/launch", responses={400: {"model": ErrorResponse}})
async def launch(
    request: Request,
    url: Optional[str] = Query(None, description="Product page or callback URL"),
    redirect: Optional[str] = Query(None, description="Landing path inside the product"),
    settings: Settings = Depends(get_app_settings),
    gateway: AuthGateway = Depends(get_auth_gateway),
    store: SessionStore = Depends(get_session_store),
):
    """
    Hand the signed-in user off to a product with a one-time code.

    Redirects to the product's /auth/callback on success, to sign-in when
    there is no session or the code request fails, and to the dashboard
    when the product URL is not allowed.
    """
    access_token, _ = store.read_tokens(request)
    hint = redirect or store.read_redirect_hint(request)

    result = await SsoLauncher(settings, gateway).launch(url, hint, access_token)

    if result.error:
        return JSONResponse(status_code=result.status_code, content={"error": result.error})

    response = RedirectResponse(url=result.location, status_code=result.status_code)
    if result.consumed_hint:
        store.clear_redirect_hint(response)
    return response


# =============================================================================
# Catalog Endpoint
# =============================================================================

@sso_router.get("/products", response_model=List[ProductEntry])
async def products(settings: Settings = Depends(get_app_settings)) -> List[ProductEntry]:
    """List products with launch URLs for the dashboard."""
    return list_products(settings)
