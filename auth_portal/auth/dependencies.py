"""
FastAPI dependencies shared by the routers.

Shared objects live on `app.state.app_state`, created by the application
factory and lifespan in main.py.
"""

from fastapi import HTTPException, Request, status

from .gateway import AuthGateway
from .session import SessionStore
from ..config import Settings


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was created with."""
    return request.app.state.app_state.settings


def get_auth_gateway(request: Request) -> AuthGateway:
    """
    Dependency to get the auth backend gateway from app state.

    Raises:
        HTTPException: 503 if the gateway has not been initialized
    """
    if not hasattr(request.app.state, "app_state"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth gateway not initialized",
        )

    gateway = request.app.state.app_state.auth_gateway
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth gateway not available",
        )

    return gateway


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.app_state.session_store
