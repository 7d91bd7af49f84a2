"""
Search service — federated product search across the catalog service
(global scope) and the tenant catalog (shop scope).

Handles:
- Validating the query and filters before any upstream call
- Dispatching both sources concurrently, each under its own timeout
- Isolating source failures (failed source -> empty list + log entry)
- Merging global-then-shop and ordering available products first
- Single-product detail lookup with optional variant selection
"""
import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple

from app.clients.catalog_client import CatalogClient, extract_upid
from app.clients.tenant_catalog_client import TenantCatalogClient
from app.core.exceptions import (
    CatalogSearchError,
    TenantSessionError,
    UpstreamRequestError,
    ValidationError,
)
from app.schemas.products import Product
from app.schemas.results import SourceResult
from app.schemas.search import SearchRequest, SearchResultSet, SourceResults
from app.utils.filters import sort_by_availability
from app.utils.product_normalize import from_global
from app.utils.variant_selection import apply_variant_selection

logger = logging.getLogger(__name__)

GLOBAL = "global"
SHOP = "shop"
BOTH = "both"

MAX_LIMIT = 50
DEFAULT_TIMEOUT = 20.0

_COUNTRY_CODE = re.compile(r"^[A-Za-z]{2}$")

SourceCall = Callable[[], Awaitable[Tuple[List[Product], str]]]


async def _skipped(source: str) -> SourceResult:
    return SourceResult.success(source, [])


class SearchAggregator:
    """Federated search over both product sources."""

    def __init__(
        self,
        catalog_client: Optional[CatalogClient],
        tenant_client: Optional[TenantCatalogClient],
        timeout_seconds: float = DEFAULT_TIMEOUT,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        self._catalog = catalog_client
        self._tenant = tenant_client
        self._timeout = timeout_seconds
        self._max_limit = max_limit

    @staticmethod
    def validate(request: SearchRequest) -> str:
        """Check query and filters; returns the stripped query."""
        query = (request.query or "").strip()
        if not query:
            raise ValidationError("Query is required and must be a non-empty string")
        if request.limit < 1:
            raise ValidationError("limit must be a positive integer")
        for name in ("min_price", "max_price"):
            value = getattr(request, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} must not be negative")
        if (
            request.min_price is not None
            and request.max_price is not None
            and request.min_price > request.max_price
        ):
            raise ValidationError("min_price must not exceed max_price")
        if request.ships_to is not None and not _COUNTRY_CODE.match(request.ships_to):
            raise ValidationError("ships_to must be an ISO 3166-1 alpha-2 country code")
        return query

    async def search(self, request: SearchRequest) -> SearchResultSet:
        query = self.validate(request)
        limit = min(request.limit, self._max_limit)
        scope = request.scope

        logger.info(f"Search started: scope={scope} limit={limit} query={query!r}")

        async def search_global() -> Tuple[List[Product], str]:
            if self._catalog is None:
                raise UpstreamRequestError("Catalog", "catalog client not configured")
            result = await self._catalog.search_global_products(
                query=query,
                context=request.context,
                limit=limit,
                min_price=request.min_price,
                max_price=request.max_price,
                ships_to=request.ships_to.upper() if request.ships_to else None,
                include_secondhand=request.include_secondhand,
            )
            return [from_global(offer) for offer in result.offers], result.instructions

        async def search_shop() -> Tuple[List[Product], str]:
            if self._tenant is None:
                raise TenantSessionError("Shop session not found")
            products = await self._tenant.search_tenant_products(
                query=query,
                limit=limit,
                min_price=request.min_price,
                max_price=request.max_price,
            )
            return products, ""

        global_task = self._run_source(GLOBAL, search_global) if scope in (GLOBAL, BOTH) else _skipped(GLOBAL)
        shop_task = self._run_source(SHOP, search_shop) if scope in (SHOP, BOTH) else _skipped(SHOP)

        # gather preserves argument order: global first regardless of which resolves first
        global_result, shop_result = await asyncio.gather(global_task, shop_task)

        combined = sort_by_availability(global_result.products + shop_result.products)

        logger.info(
            f"Search completed: global={len(global_result.products)} "
            f"shop={len(shop_result.products)} combined={len(combined)}"
        )

        return SearchResultSet(
            global_results=SourceResults.of(global_result.products),
            shop=SourceResults.of(shop_result.products),
            combined=SourceResults.of(combined),
            instructions=global_result.instructions,
        )

    async def _run_source(self, source: str, call: SourceCall) -> SourceResult:
        """Run one source; any failure becomes an empty result for that source."""
        try:
            products, instructions = await asyncio.wait_for(call(), timeout=self._timeout)
            return SourceResult.success(source, products, instructions)
        except asyncio.TimeoutError:
            error = UpstreamRequestError(source, f"no response within {self._timeout}s", timed_out=True)
            logger.warning(f"{source} search timed out after {self._timeout}s")
            return SourceResult.failure(source, error)
        except CatalogSearchError as exc:
            logger.warning(f"{source} search failed: {exc}")
            return SourceResult.failure(source, exc)
        except Exception as exc:
            logger.exception(f"{source} search failed unexpectedly: {exc}")
            return SourceResult.failure(source, exc)

    async def get_product_details(
        self,
        product_id: Optional[str],
        scope: str = GLOBAL,
        product_options: Optional[Iterable[Any]] = None,
    ) -> Product:
        """
        Resolve one product by identifier.

        Errors propagate: there is no partial result to fall back to.
        For shop scope with requested options, the first variant satisfying
        every constraint is selected.
        """
        if not product_id or not product_id.strip():
            raise ValidationError("Product ID is required")
        product_options = list(product_options or [])

        if scope == SHOP:
            if self._tenant is None:
                raise TenantSessionError("Shop session not found")
            product = await self._with_timeout(SHOP, self._tenant.get_tenant_product_details(product_id.strip()))
            if product_options:
                product = apply_variant_selection(product, product_options)
            return product

        if scope != GLOBAL:
            raise ValidationError(f"Unknown scope: {scope}")
        if self._catalog is None:
            raise UpstreamRequestError("Catalog", "catalog client not configured")

        raw = await self._with_timeout(
            GLOBAL,
            self._catalog.get_global_product_details(extract_upid(product_id), product_options),
        )
        return from_global(raw)

    async def _with_timeout(self, source: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise UpstreamRequestError(source, f"no response within {self._timeout}s", timed_out=True) from exc
