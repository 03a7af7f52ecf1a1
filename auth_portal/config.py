"""
Configuration module for the Auth Portal.

This module uses Pydantic Settings to load and validate environment variables
for the external authentication backend, this application's public origin,
the downstream product allow-list, cookie names and CORS settings.

Environment variables are loaded from .env file or system environment.

Missing URL settings never widen trust: an unset APP_PUBLIC_URL makes every
redirect unsafe, and an unset AUTH_API_URL makes every backend call fail.
"""

from functools import lru_cache
from typing import List, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Lifetimes (seconds)
# =============================================================================

ACCESS_TOKEN_DEFAULT_MAX_AGE = 60 * 60
SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 7
CSRF_COOKIE_MAX_AGE = 60 * 60 * 24


class Product(BaseModel):
    """A downstream application users can be handed off to."""

    id: str
    name: str
    url: str
    icon: str = "briefcase"
    active: bool = True


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All configuration for the auth backend, SSO allow-list, session cookies
    and route gating is defined here.
    """

    # =========================================================================
    # Origins
    # =========================================================================

    AUTH_API_URL: Optional[str] = Field(
        None,
        description="Base URL of the external authentication backend (e.g., https://api.auth.example.com)",
    )

    APP_PUBLIC_URL: Optional[str] = Field(
        None,
        description="Public base URL of this application (e.g., https://auth.example.com)",
    )

    ALLOWED_APP_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of downstream product origins allowed as redirect targets",
    )

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    # =========================================================================
    # Runtime
    # =========================================================================

    ENVIRONMENT: str = Field(
        default="development",
        description="Deployment environment; 'production' turns on Secure cookies",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    AUTH_API_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for calls to the auth backend",
        gt=0,
        le=60,
    )

    SIGNUP_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="Timeout for account creation calls",
        gt=0,
        le=60,
    )

    # =========================================================================
    # Cookies
    # =========================================================================

    ACCESS_COOKIE_NAME: str = Field(default="access_token")
    REFRESH_COOKIE_NAME: str = Field(default="refresh_token")
    LOGGED_IN_COOKIE_NAME: str = Field(default="logged_in")
    CSRF_COOKIE_NAME: str = Field(default="csrf_token")
    CSRF_HEADER_NAME: str = Field(default="X-CSRF-Token")
    REDIRECT_HINT_COOKIE_NAME: str = Field(default="redirect_hint")

    LEGACY_COOKIE_NAMES: str = Field(
        default="session,accessToken",
        description="Comma-separated cookie names from earlier session schemes, cleared on logout",
    )

    # =========================================================================
    # Routes
    # =========================================================================

    SIGN_IN_PATH: str = Field(default="/sign-in")
    DASHBOARD_PATH: str = Field(default="/dashboard")

    # =========================================================================
    # Product catalog
    # =========================================================================

    PRODUCTS: List[Product] = Field(
        default_factory=list,
        description="JSON list of products: [{id, name, url, icon, active}]",
    )

    # =========================================================================
    # Pydantic Settings Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_app_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_APP_ORIGINS as a clean list.

        Returns:
            List of origins without whitespace or trailing slashes.
        """
        if not self.ALLOWED_APP_ORIGINS:
            return []

        return [
            origin.strip().rstrip("/")
            for origin in self.ALLOWED_APP_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS (CORS) as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def legacy_cookie_names_list(self) -> List[str]:
        return [
            name.strip()
            for name in self.LEGACY_COOKIE_NAMES.split(",")
            if name.strip()
        ]

    @property
    def app_origin(self) -> Optional[str]:
        """
        Origin (scheme://host[:port]) of APP_PUBLIC_URL.

        Returns:
            Origin string, or None if APP_PUBLIC_URL is not configured.
        """
        if not self.APP_PUBLIC_URL:
            return None
        parts = urlsplit(self.APP_PUBLIC_URL)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def auth_api_url_str(self) -> Optional[str]:
        """Auth backend URL without trailing slash."""
        if not self.AUTH_API_URL:
            return None
        return self.AUTH_API_URL.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def sign_in_url(self) -> str:
        """Absolute sign-in URL when the public URL is known, else the path."""
        if self.APP_PUBLIC_URL:
            return f"{self.APP_PUBLIC_URL.rstrip('/')}{self.SIGN_IN_PATH}"
        return self.SIGN_IN_PATH

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("AUTH_API_URL", "APP_PUBLIC_URL")
    @classmethod
    def validate_http_url(cls, v: Optional[str]) -> Optional[str]:
        """
        Validate that a configured base URL is an absolute http(s) URL.

        Args:
            v: Raw URL string, or None

        Returns:
            URL without trailing slash, or None when unset/blank

        Raises:
            ValueError: If the URL is not absolute http(s)
        """
        if v is None or not v.strip():
            return None

        v = v.strip().rstrip("/")
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(
                f"Invalid URL: '{v}'. Expected format: 'https://host[:port]'"
            )
        return v

    @field_validator("ALLOWED_APP_ORIGINS")
    @classmethod
    def validate_allowed_app_origins(cls, v: str) -> str:
        """
        Validate that every allow-list entry is a bare origin.

        Raises:
            ValueError: If an entry has no scheme/host or carries a path
        """
        for origin in [o.strip() for o in v.split(",") if o.strip()]:
            parts = urlsplit(origin)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ValueError(
                    f"Invalid origin format: '{origin}'. "
                    "Expected format: 'https://app.example.com'"
                )
            if parts.path not in ("", "/") or parts.query or parts.fragment:
                raise ValueError(
                    f"Invalid origin format: '{origin}'. "
                    "Origins must not include a path or query"
                )
        return v

    @field_validator("SIGN_IN_PATH", "DASHBOARD_PATH")
    @classmethod
    def validate_route_path(cls, v: str) -> str:
        if not v.startswith("/") or v.startswith("//"):
            raise ValueError(f"Route path must start with a single '/': {v}")
        return v


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If environment variables are invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Validate critical configuration settings and return a status report.

    Called during application startup so that a missing origin setting shows
    up in the logs instead of as silently refused redirects.

    Returns:
        Dictionary with validation status and any warnings.
    """
    errors = []
    warnings = []

    if not settings.AUTH_API_URL:
        errors.append("AUTH_API_URL is not set; sign-in, refresh and SSO launch will fail")

    if not settings.APP_PUBLIC_URL:
        errors.append("APP_PUBLIC_URL is not set; every redirect target will be rejected")

    if not settings.allowed_app_origins_list:
        warnings.append("ALLOWED_APP_ORIGINS is empty; SSO launch is limited to this origin")

    if not settings.is_production:
        warnings.append("ENVIRONMENT is not 'production'; cookies are sent without the Secure flag")

    for product in settings.PRODUCTS:
        origin = f"{urlsplit(product.url).scheme}://{urlsplit(product.url).netloc}"
        if product.active and origin not in settings.allowed_app_origins_list:
            warnings.append(f"Product '{product.id}' origin {origin} is not in ALLOWED_APP_ORIGINS")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "allowed_app_origins": settings.allowed_app_origins_list,
    }
