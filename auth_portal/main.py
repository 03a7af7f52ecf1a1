"""
Main FastAPI application entry point for the auth portal.

This module initializes the FastAPI application with:
- Lifespan management (auth backend client creation and shutdown)
- CORS, CSRF and route gating middleware
- Authentication and SSO routers
- Health check and service metadata endpoints
- Validation and global exception handlers
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .auth import auth_router
from .auth.gateway import AuthGateway
from .auth.session import SessionStore
from .config import Settings, get_settings, validate_configuration
from .models import HealthResponse
from .security.csrf import CsrfMiddleware
from .security.route_gate import RouteGateMiddleware
from .sso import sso_router

SERVICE_NAME = "auth-portal"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


class AppState:
    """
    Per-application state container.

    Holds the settings and the shared auth backend gateway.
    """
    def __init__(self, settings: Settings, auth_gateway: Optional[AuthGateway] = None):
        self.settings = settings
        self.session_store = SessionStore(settings)
        self.auth_gateway = auth_gateway
        self.owns_gateway = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Report configuration problems
        - Create the auth backend gateway (one connection pool per process)

    Shutdown tasks:
        - Close the gateway's connection pool
    """
    app_state: AppState = app.state.app_state
    settings = app_state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("auth_portal.main")

    report = validate_configuration(settings)
    for error in report["errors"]:
        logger.error(f"Configuration error: {error}")
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    if app_state.auth_gateway is None:
        app_state.auth_gateway = AuthGateway.from_settings(settings)
        app_state.owns_gateway = True

    logger.info(
        "Auth portal started",
        extra={
            "service": SERVICE_NAME,
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "allowed_app_origins": report["allowed_app_origins"],
        }
    )

    yield

    logger.info("Shutting down auth portal")
    if app_state.owns_gateway and app_state.auth_gateway is not None:
        await app_state.auth_gateway.aclose()
        app_state.auth_gateway = None
        app_state.owns_gateway = False
    logger.info("Auth portal shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    auth_gateway: Optional[AuthGateway] = None,
) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: Settings to use (defaults to get_settings())
        auth_gateway: Pre-built gateway; when omitted one is created at startup

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Auth Portal",
        description="Centralized sign-in, cookie sessions and SSO handoff to products",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.app_state = AppState(settings, auth_gateway)

    # Last added runs first: CORS, then CSRF, then route gating
    app.add_middleware(RouteGateMiddleware, settings=settings)
    app.add_middleware(CsrfMiddleware, settings=settings)

    if settings.allowed_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins_list,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", settings.CSRF_HEADER_NAME],
        )

    app.include_router(auth_router)
    app.include_router(sso_router)

    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__
        }

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        """
        Root endpoint with service information.

        Returns:
            dict: Service metadata and available endpoints
        """
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "description": "Centralized sign-in, cookie sessions and SSO handoff to products",
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "session": "/api/auth/session",
                "launch": "/api/auth/launch",
                "products": "/api/products",
                "logout": "/api/logout",
            }
        }

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Map body/query validation failures to 400.

        Only field locations are returned; submitted values are never echoed.
        """
        fields = [
            ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "validation_error",
                "message": "Invalid request",
                "fields": fields,
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a generic 400; nothing about the
        failure reaches the client.
        """
        logger = logging.getLogger("auth_portal.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request"}
        )

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "auth_portal.main:app",
        host="0.0.0.0",
        port=8080,
        reload=not settings.is_production,
        log_level=settings.LOG_LEVEL.lower()
    )
