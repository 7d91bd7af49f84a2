"""
Tenant session resolution.

The OAuth install handshake that establishes a merchant session lives
outside this service. Here we only work out which shop a request targets
and pair it with the admin API token configured for the custom app.

Only one admin token is configured, so a caller-supplied shop is accepted
only when it names that same store.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

SHOP_HEADER = "X-Shop-Domain"
SHOP_SUFFIX = ".myshopify.com"

_SHOP_HOST = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")


@dataclass(frozen=True)
class TenantSession:
    shop: str
    access_token: str


def normalize_shop_domain(value: Optional[str]) -> Optional[str]:
    """
    Reduce a shop reference to its bare `<shop>.myshopify.com` host.

    - "my-store" -> "my-store.myshopify.com"
    - "https://my-store.myshopify.com/" -> "my-store.myshopify.com"

    Returns None for anything else: other hosts, paths, ports, credentials
    or query strings.
    """
    if not value or not value.strip():
        return None

    raw = value.strip().lower()
    if "://" not in raw:
        raw = f"https://{raw}"

    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL:
        return None

    if url.scheme not in ("http", "https"):
        return None
    if url.path not in ("", "/") or url.query or url.fragment or url.userinfo or url.port is not None:
        return None

    host = url.host
    if host and "." not in host:
        host = f"{host}{SHOP_SUFFIX}"

    if not host or not _SHOP_HOST.match(host):
        return None
    return host


def resolve_tenant_session(request: Request, settings: Optional[Settings] = None) -> Optional[TenantSession]:
    """
    Resolve the tenant session for a request.

    Shop lookup order: `shop` query parameter, `X-Shop-Domain` header,
    then the configured default store. Returns None when no valid shop or
    no access token is available, or when the requested shop is not the
    store the configured token belongs to.
    """
    settings = settings or get_settings()
    token = settings.shopify_admin_api_token
    configured = normalize_shop_domain(settings.shopify_store_domain)

    requested = request.query_params.get("shop") or request.headers.get(SHOP_HEADER)
    if requested:
        shop = normalize_shop_domain(requested)
        if shop is None:
            logger.warning("rejected shop reference shop=%r", requested)
            return None
        if configured and shop != configured:
            logger.warning("shop %s does not match configured store %s", shop, configured)
            return None
    else:
        shop = configured

    if not shop or not token:
        logger.debug("no tenant session shop=%s token_configured=%s", shop, bool(token))
        return None

    return TenantSession(shop=shop, access_token=token)
