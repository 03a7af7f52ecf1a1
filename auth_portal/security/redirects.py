"""
Redirect target validation.

Every redirect this application emits (after sign-in, at SSO launch, on
logout) goes through validate_redirect first. The validator only blocks
cross-origin targets; it does not judge which same-origin paths are safe.
"""

import logging
import re
from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}

# Whitespace, control characters and backslashes never appear in a target we
# produced ourselves; browsers also rewrite "\" to "/", which would turn
# "/\evil.com" into a protocol-relative URL.
_UNPARSEABLE = re.compile(r"[\s\x00-\x1f\x7f\\]")


def normalize_origin(url: str) -> Optional[str]:
    """
    Reduce a URL to its origin (scheme://host[:port]).

    Scheme and host are lowercased and default ports dropped, so
    "HTTPS://Products.Example.com:443/x" becomes "https://products.example.com".

    Returns:
        Origin string, or None if the URL is not absolute http(s).
    """
    try:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        host = parts.hostname
        port = parts.port
    except ValueError:
        return None

    if scheme not in _DEFAULT_PORTS or not host:
        return None

    if port is None or port == _DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def validate_redirect(
    candidate: Optional[str],
    allow_list: Iterable[str],
    self_origin: Optional[str],
) -> Optional[str]:
    """
    Return a safe redirect target, or None.

    Args:
        candidate: Target taken from a query parameter, cookie or request body
        allow_list: Origins of downstream products
        self_origin: Origin of this application

    Returns:
        The candidate unchanged when it is an accepted relative path or
        absolute URL, the resolved absolute URL for other accepted relative
        references, or None.
    """
    if not candidate:
        return None

    own_origin = normalize_origin(self_origin) if self_origin else None
    if own_origin is None:
        # Without a known origin nothing can be judged same-origin.
        return None

    if _UNPARSEABLE.search(candidate):
        return None

    try:
        resolved = urljoin(own_origin + "/", candidate)
    except ValueError:
        return None

    target_origin = normalize_origin(resolved)
    if target_origin is None:
        return None

    allowed = {
        origin
        for origin in (normalize_origin(o) for o in allow_list if o)
        if origin is not None
    }

    if target_origin != own_origin and target_origin not in allowed:
        logger.debug(
            "Rejected redirect target",
            extra={"target_origin": target_origin},
        )
        return None

    if candidate.startswith("/") or urlsplit(candidate).scheme:
        return candidate
    return resolved


def is_relative_path(target: Optional[str]) -> bool:
    """True for a same-origin path such as "/orders" (not "//host")."""
    return bool(target) and target.startswith("/") and not target.startswith("//")
