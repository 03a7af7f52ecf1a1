"""Product catalog shown on the dashboard."""

from typing import List
from urllib.parse import urlencode

from ..config import Settings
from ..models import ProductEntry
from ..security.redirects import validate_redirect

LAUNCH_PATH = "/api/auth/launch"


def launch_url(product_url: str) -> str:
    return f"{LAUNCH_PATH}?{urlencode({'url': product_url})}"


def list_products(settings: Settings) -> List[ProductEntry]:
    """
    Catalog entries with launch URLs.

    Only active products whose URL passes redirect validation get a
    `launchUrl`; the rest are listed without one.
    """
    entries = []
    for product in settings.PRODUCTS:
        launchable = product.active and validate_redirect(
            product.url,
            settings.allowed_app_origins_list,
            settings.app_origin,
        )
        entries.append(
            ProductEntry(
                id=product.id,
                name=product.name,
                icon=product.icon,
                active=product.active,
                launchUrl=launch_url(product.url) if launchable else None,
            )
        )
    return entries
