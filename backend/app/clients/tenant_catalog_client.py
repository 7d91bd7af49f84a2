import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings
from app.core.exceptions import NotFoundError, TenantSessionError, UpstreamRequestError
from app.core.session import TenantSession, normalize_shop_domain
from app.schemas.products import Product
from app.schemas.upstream import TenantRawProduct
from app.utils.filters import filter_by_price
from app.utils.product_normalize import from_tenant

logger = logging.getLogger("tenant_catalog_client")

SERVICE = "Shopify"
MAX_LIMIT = 50

# Shopify search syntax characters; escaped so the query stays one literal term
_SEARCH_SPECIAL = re.compile(r"([\\:()\"'*\s])")

SEARCH_PRODUCTS_QUERY = """
    query searchProducts($query: String!, $first: Int!) {
        products(first: $first, query: $query) {
            edges {
                node {
                    id
                    title
                    description
                    handle
                    status
                    featuredImage { url altText }
                    images(first: 5) {
                        edges { node { url altText } }
                    }
                    priceRange {
                        minVariantPrice { amount currencyCode }
                        maxVariantPrice { amount currencyCode }
                    }
                    variants(first: 10) {
                        edges {
                            node {
                                id
                                title
                                price
                                availableForSale
                                selectedOptions { name value }
                                image { url altText }
                            }
                        }
                    }
                    onlineStoreUrl
                    tags
                }
            }
        }
    }
"""

PRODUCT_DETAILS_QUERY = """
    query getProduct($id: ID!) {
        product(id: $id) {
            id
            title
            description
            handle
            status
            featuredImage { url altText }
            images(first: 10) {
                edges { node { url altText } }
            }
            priceRange {
                minVariantPrice { amount currencyCode }
                maxVariantPrice { amount currencyCode }
            }
            variants(first: 50) {
                edges {
                    node {
                        id
                        title
                        price
                        availableForSale
                        selectedOptions { name value }
                        image { url altText }
                    }
                }
            }
            onlineStoreUrl
            tags
            options { name values }
        }
    }
"""


class TenantCatalogClient:
    """GraphQL Admin API client bound to one tenant session."""

    def __init__(
        self,
        session: Optional[TenantSession],
        api_version: str = "2024-10",
        timeout: float = 20.0,
    ) -> None:
        self._session = session
        self._store_domain = normalize_shop_domain(session.shop) if session else None
        self._api_version = api_version
        self._timeout = timeout

    @classmethod
    def from_settings(cls, session: Optional[TenantSession], settings: Settings) -> "TenantCatalogClient":
        return cls(
            session=session,
            api_version=settings.shopify_api_version,
            timeout=settings.upstream_timeout_seconds,
        )

    @property
    def shop_name(self) -> str:
        return self._store_domain or ""

    @staticmethod
    def _to_gid(entity: str, value: str | int) -> str:
        if isinstance(value, str) and value.startswith("gid://"):
            return value
        return f"gid://shopify/{entity}/{value}"

    @staticmethod
    def build_search_predicate(query: str) -> str:
        """Substring match on title, description and tags. Price is never encoded here."""
        term = "".join(c for c in (query or "") if c.isprintable()).strip()
        term = _SEARCH_SPECIAL.sub(r"\\\1", " ".join(term.split()))
        return f"title:*{term}* OR description:*{term}* OR tags:*{term}*"

    def _graphql_url(self) -> str:
        if not self._session or not self._store_domain:
            raise TenantSessionError("Shop session not found")
        return f"https://{self._store_domain}/admin/api/{self._api_version}/graphql.json"

    async def _call_graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = self._graphql_url()
        headers = {
            "X-Shopify-Access-Token": self._session.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload = {"query": query, "variables": variables or {}}
        logger.info("shopify graphql request shop=%s", self._store_domain)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamRequestError(SERVICE, "request timed out", timed_out=True) from exc
        except httpx.RequestError as exc:
            raise UpstreamRequestError(SERVICE, f"network error: {exc}") from exc

        logger.info("shopify graphql response status=%s shop=%s", resp.status_code, self._store_domain)
        if resp.status_code == 401:
            raise UpstreamRequestError(SERVICE, "authentication failed", status_code=401, body=resp.text)
        if resp.status_code >= 400:
            raise UpstreamRequestError(
                SERVICE,
                f"request failed: {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamRequestError(SERVICE, "response body is not JSON", status_code=resp.status_code, body=resp.text) from exc

        if not isinstance(data, dict):
            raise UpstreamRequestError(SERVICE, "unexpected response shape", status_code=resp.status_code, body=resp.text)
        if data.get("errors"):
            raise UpstreamRequestError(SERVICE, f"GraphQL error: {data.get('errors')}", status_code=resp.status_code)
        result = data.get("data")
        return result if isinstance(result, dict) else {}

    @staticmethod
    def _flatten_edges(connection: Any) -> List[Dict[str, Any]]:
        if not isinstance(connection, dict):
            return []
        nodes = []
        for edge in connection.get("edges") or []:
            node = edge.get("node") if isinstance(edge, dict) else None
            if isinstance(node, dict):
                nodes.append(node)
        return nodes

    @classmethod
    def _flatten_product(cls, node: Dict[str, Any]) -> TenantRawProduct:
        product = dict(node)
        product["images"] = cls._flatten_edges(node.get("images"))
        product["variants"] = cls._flatten_edges(node.get("variants"))
        return product

    async def search_tenant_products(
        self,
        query: str,
        limit: int = 10,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> List[Product]:
        variables = {
            "query": self.build_search_predicate(query),
            "first": max(1, min(limit, MAX_LIMIT)),
        }
        data = await self._call_graphql(SEARCH_PRODUCTS_QUERY, variables)

        raw_products = [self._flatten_product(node) for node in self._flatten_edges(data.get("products"))]
        products = [from_tenant(raw, self.shop_name) for raw in raw_products]

        # Price bounds are applied to the fetched page only.
        if min_price is not None or max_price is not None:
            products = filter_by_price(products, min_price, max_price)

        logger.info("shopify search shop=%s fetched=%s returned=%s", self.shop_name, len(raw_products), len(products))
        return products

    async def get_tenant_product_details(self, product_id: str) -> Product:
        gid = self._to_gid("Product", product_id)
        data = await self._call_graphql(PRODUCT_DETAILS_QUERY, {"id": gid})

        node = data.get("product")
        if not node:
            raise NotFoundError("Product", gid)

        return from_tenant(self._flatten_product(node), self.shop_name)
