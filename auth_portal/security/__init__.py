"""
Security Package
================

Request-level protections shared by every route.

Main Components:
----------------
- redirects.py: Redirect target validation against the origin allow-list
- csrf.py: Double-submit CSRF guard and middleware
- route_gate.py: Public / auth-only / protected route gating middleware
"""

from .csrf import CsrfGuard, CsrfMiddleware
from .redirects import validate_redirect
from .route_gate import RouteGateMiddleware, classify_path

__all__ = [
    "CsrfGuard",
    "CsrfMiddleware",
    "RouteGateMiddleware",
    "classify_path",
    "validate_redirect",
]
