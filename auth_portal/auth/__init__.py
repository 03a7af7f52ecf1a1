"""
Authentication Package

This package handles the browser session for the auth portal: tokens issued
by the external auth backend are kept in HTTP-only cookies, refreshed
silently, and cleared on logout or failure.

Key responsibilities:
- Credential operations forwarded to the auth backend (sign-in, sign-up,
  OTP, password reset)
- Cookie session state machine with silent refresh
- Unverified token decoding for expiry and profile display
- Token handoff and logout endpoints

Modules:
- routes: Session and credential endpoints (/api/auth/*, /api/logout, /sso/logout)
- gateway: Async HTTP client for the auth backend
- session: Cookie session store (set, clear, check, refresh)
- tokens: Token payload decoding and expiry checks
- dependencies: FastAPI dependencies for settings, gateway and session store

The session flow:
1. Browser signs in via /api/auth/sign-in (or hands tokens to /api/auth/set-token)
2. Tokens are stored in HTTP-only cookies
3. /api/auth/session reports the user and refreshes expired access tokens
4. /api/logout or /sso/logout clears every session cookie
"""

from .routes import auth_router

__all__ = [
    "auth_router",
]
