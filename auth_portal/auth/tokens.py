"""
Bearer token inspection.

The access token issued by the auth backend is a JWT whose payload carries
the user's profile and its own expiry. This module reads that payload
WITHOUT verifying the signature: verification is the backend's job, and the
decoded claims here only decide whether a refresh is due, how long a cookie
may live, and which profile fields to show. Nothing in this module may be
used to grant access.
"""

import time
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import PyJWTError

Claims = Dict[str, Any]

PROFILE_FIELDS = (
    "id",
    "email",
    "firstName",
    "lastName",
    "displayPicture",
    "userType",
    "phone",
)


def decode_token(token: Optional[str]) -> Optional[Claims]:
    """
    Decode a token's payload without verification.

    Args:
        token: Raw bearer token, or None

    Returns:
        Payload claims, or None if the token is missing or malformed
        (wrong segment count, bad base64, payload not a JSON object).
    """
    if not token:
        return None

    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except (PyJWTError, ValueError, TypeError):
        return None

    if not isinstance(claims, dict):
        return None
    return claims


def get_expiry(claims: Optional[Claims]) -> Optional[int]:
    """
    Extract the `exp` claim as integer seconds since epoch.

    Booleans and non-numeric values count as missing.
    """
    if not claims:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return int(exp)


def is_expired(token: Optional[str], now: Optional[float] = None) -> bool:
    """
    Check whether a token must be treated as expired.

    A token that does not decode, or that has no `exp` claim, is expired:
    an unbounded token is never trusted.

    Args:
        token: Raw bearer token, or None
        now: Current time in seconds since epoch (defaults to time.time())

    Returns:
        True if the token is missing, malformed, unbounded or expired.
    """
    exp = get_expiry(decode_token(token))
    if exp is None:
        return True

    current = int(time.time() if now is None else now)
    return exp <= current


def profile_from_claims(claims: Claims) -> Dict[str, Any]:
    """Non-sensitive profile fields for the UI; never includes the token."""
    return {field: claims.get(field) for field in PROFILE_FIELDS}
