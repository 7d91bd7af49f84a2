"""
Lazy DI container — singleton access to clients and per-request services.

Process-wide singletons (credential cache, catalog client, widget rate
limiter) are built once. The tenant client and the aggregator depend on the
request's tenant session and are built per request.
"""

from functools import lru_cache
from typing import Optional

import redis
from fastapi import Request

from app.clients.catalog_client import CatalogClient
from app.clients.credential_cache import CredentialCache
from app.clients.tenant_catalog_client import TenantCatalogClient
from app.core.config import get_settings
from app.core.session import TenantSession, resolve_tenant_session
from app.services.search_service import SearchAggregator
from app.utils.rate_limiter import IpRateLimiter


# -- Singletons ------------------------------------------------------------

@lru_cache(maxsize=1)
def get_credential_cache() -> CredentialCache:
    return CredentialCache.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_catalog_client() -> CatalogClient:
    return CatalogClient.from_settings(get_settings(), get_credential_cache())


@lru_cache(maxsize=1)
def get_widget_rate_limiter() -> IpRateLimiter:
    settings = get_settings()
    return IpRateLimiter(
        redis_client=redis.from_url(settings.redis_url),
        max_requests=settings.widget_rate_limit_max,
        window_seconds=settings.widget_rate_limit_window_seconds,
    )


# -- Per-request -----------------------------------------------------------

def build_tenant_client(session: Optional[TenantSession]) -> Optional[TenantCatalogClient]:
    if session is None:
        return None
    return TenantCatalogClient.from_settings(session, get_settings())


def build_search_aggregator(session: Optional[TenantSession]) -> SearchAggregator:
    settings = get_settings()
    return SearchAggregator(
        catalog_client=get_catalog_client(),
        tenant_client=build_tenant_client(session),
        timeout_seconds=settings.upstream_timeout_seconds,
        max_limit=settings.max_search_limit,
    )


def get_search_aggregator(request: Request) -> SearchAggregator:
    """FastAPI dependency: aggregator bound to the caller's tenant session (if any)."""
    return build_search_aggregator(resolve_tenant_session(request))


def get_global_search_aggregator() -> SearchAggregator:
    """FastAPI dependency for public endpoints: catalog service only, no tenant session."""
    return build_search_aggregator(None)
