"""
SSO Package
===========

Cross-application single sign-on: hands a signed-in user off to downstream
products with a one-time authorization code.

Main Components:
----------------
- launcher.py: Launch handshake (allow-list check, code minting, callback URL)
- products.py: Product catalog with launch URLs
- routes.py: FastAPI router (/api/auth/launch, /api/products)

Usage:
------
    from auth_portal.sso import sso_router
    app.include_router(sso_router)
"""

from .routes import sso_router

__all__ = ["sso_router"]
