"""
Auth event logging helpers.

Everything that reaches a log line from the auth flows goes through these
helpers first: emails and tokens are masked, backend failures are reduced to
a short error class, and a flow id ties together the log lines of a single
sign-in or launch.
"""

import secrets
import string
import time
from typing import Callable, Optional

import httpx


def mask_email(email: Optional[str]) -> str:
    """Mask an email for logging: "j***@example.com"."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    if not local or not domain:
        return "***"
    return f"{local[0]}***@{domain}"


def mask_token(token: Optional[str]) -> str:
    """Show only the first 8 and last 4 characters of a token."""
    if not token:
        return "none"
    if len(token) < 16:
        return f"present({len(token)}chars)"
    return f"{token[:8]}...{token[-4:]}"


def classify_error(error: BaseException) -> str:
    """
    Classify a backend call failure for logging.

    Args:
        error: Exception raised by the HTTP client

    Returns:
        One of TIMEOUT, CONNECTION_REFUSED, NETWORK_ERROR, HTTP_<status>
        or UNKNOWN.
    """
    if isinstance(error, httpx.TimeoutException):
        return "TIMEOUT"
    if isinstance(error, httpx.ConnectError):
        return "CONNECTION_REFUSED"
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP_{error.response.status_code}"
    if isinstance(error, (httpx.NetworkError, httpx.RemoteProtocolError)):
        return "NETWORK_ERROR"
    return "UNKNOWN"


_FLOW_ALPHABET = string.ascii_uppercase + string.digits


def flow_id() -> str:
    """Short random id to trace a single auth flow across log lines."""
    return "".join(secrets.choice(_FLOW_ALPHABET) for _ in range(6))


def start_timer() -> Callable[[], int]:
    """Start a timer; the returned callable gives elapsed milliseconds."""
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)
