"""
Auth Portal
===========

Centralized sign-in service. Fronts an external authentication backend,
keeps the resulting tokens in HTTP-only cookies, and hands signed-in users
off to downstream products with one-time authorization codes.

Packages:
---------
- auth: Session cookies, credential endpoints, backend gateway
- sso: Product launch handshake and catalog
- security: Redirect validation, CSRF guard, route gating

Usage:
------
    uvicorn auth_portal.main:app --host 0.0.0.0 --port 8080
"""

__version__ = "1.0.0"
