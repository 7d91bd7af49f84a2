"""
Pytest configuration and shared fixtures for catalog search tests.

Provides mocked HTTP transport, mock clients, and sample upstream documents.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """Create a test client for the FastAPI app; dependency overrides are reset afterwards."""
    from app.main import app
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_settings():
    """Settings object with test defaults (no real credentials)."""
    from app.core.config import Settings
    return Settings(
        catalog_client_id="test-catalog-id",
        catalog_client_secret="test-catalog-secret",
        catalog_token_url="https://auth.catalog.test/access_token",
        catalog_api_base="https://catalog.test/global",
        shopify_store_domain="test-store.myshopify.com",
        shopify_admin_api_token="shpat_test_token",
        shopify_api_version="2024-10",
        upstream_timeout_seconds=5.0,
    )


# ---------------------------------------------------------------------------
# HTTP transport
# ---------------------------------------------------------------------------

def make_response(status_code: int = 200, json_body=None, text: str = ""):
    """httpx.Response stand-in with status_code, text and json()."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.is_success = 200 <= status_code < 300
    if isinstance(json_body, Exception):
        resp.json.side_effect = json_body
    else:
        resp.json.return_value = json_body
    return resp


def async_client_ctx(mock_http):
    """Context manager returned by a patched httpx.AsyncClient(...)."""
    mock_ctx = AsyncMock()
    mock_ctx.__aenter__.return_value = mock_http
    return mock_ctx


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

class InMemoryRedis:
    """
    Redis client double covering what IpRateLimiter uses: the registered
    hit script (INCR + EXPIRE + TTL), get, ttl, scan_iter and delete.

    `now` is advanced by tests to expire keys.
    """

    def __init__(self):
        self.now = 0.0
        self.counters = {}
        self.expires_at = {}
        self.fail_with = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def _evict(self):
        for key in [k for k, at in self.expires_at.items() if at <= self.now]:
            self.counters.pop(key, None)
            self.expires_at.pop(key, None)

    def register_script(self, script):
        def run(keys, args):
            self._check()
            self._evict()
            key, window = keys[0], int(args[0])
            self.counters[key] = self.counters.get(key, 0) + 1
            if key not in self.expires_at:
                self.expires_at[key] = self.now + window
            return [self.counters[key], int(self.expires_at[key] - self.now)]
        return run

    def get(self, key):
        self._check()
        self._evict()
        value = self.counters.get(key)
        return str(value).encode() if value is not None else None

    def ttl(self, key):
        self._check()
        self._evict()
        if key not in self.counters:
            return -2
        return int(self.expires_at[key] - self.now)

    def scan_iter(self, match=None):
        self._check()
        prefix = (match or "*").rstrip("*")
        return [k for k in list(self.counters) if k.startswith(prefix)]

    def delete(self, *keys):
        self._check()
        for key in keys:
            self.counters.pop(key, None)
            self.expires_at.pop(key, None)
        return len(keys)


@pytest.fixture
def memory_redis():
    return InMemoryRedis()


@pytest.fixture
def rpc_envelope():
    """Build a tool-call response envelope with the payload embedded as text."""
    import json

    def _build(payload, as_text: bool = True):
        text = json.dumps(payload) if as_text else payload
        return {"jsonrpc": "2.0", "id": 1, "result": {"content": [{"type": "text", "text": text}]}}

    return _build


# ---------------------------------------------------------------------------
# Clients (mocked)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_credential_cache():
    """Mocked CredentialCache."""
    cache = MagicMock()
    cache.get_token = AsyncMock(return_value="catalog-token")
    cache.invalidate = MagicMock()
    return cache


@pytest.fixture
def mock_catalog_client():
    """Mocked CatalogClient."""
    from app.schemas.upstream import GlobalSearchResult
    client = MagicMock()
    client.search_global_products = AsyncMock(return_value=GlobalSearchResult())
    client.get_global_product_details = AsyncMock(return_value={})
    return client


@pytest.fixture
def mock_tenant_client():
    """Mocked TenantCatalogClient."""
    client = MagicMock()
    client.shop_name = "test-store.myshopify.com"
    client.search_tenant_products = AsyncMock(return_value=[])
    client.get_tenant_product_details = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# Sample upstream documents
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_global_offer():
    """Catalog-service offer as returned by search_global_products."""
    return {
        "id": "gid://shopify/p/ABC123",
        "title": "Trail Running Shoe",
        "description": "Lightweight shoe for rough terrain",
        "images": [
            {
                "url": "https://cdn.test/shoe.jpg",
                "altText": "Shoe side view",
                "product": {"shop": {"name": "Peak Outfitters", "onlineStoreUrl": "https://peak.test"}},
            }
        ],
        "options": [
            {
                "name": "Size",
                "values": [
                    {"value": "9", "availableForSale": True, "exists": True},
                    {"value": "10", "availableForSale": False, "exists": True},
                ],
            }
        ],
        "priceRange": {
            "min": {"amount": "89.99", "currencyCode": "CAD"},
            "max": {"amount": "119", "currencyCode": "CAD"},
        },
        "availableForSale": True,
        "products": [
            {
                "id": "gid://shopify/Product/1",
                "title": "Trail Running Shoe",
                "onlineStoreUrl": "https://peak.test/products/trail-shoe",
                "checkoutUrl": "https://peak.test/cart/1:1",
                "featuredImage": {"url": "https://cdn.test/featured.jpg"},
                "shop": {"id": "gid://shopify/Shop/9", "name": "Peak Outfitters", "onlineStoreUrl": "https://peak.test"},
                "selectedProductVariant": {
                    "id": "gid://shopify/ProductVariant/11",
                    "price": {"amount": "89.99", "currencyCode": "CAD"},
                    "availableForSale": True,
                    "options": [{"name": "Size", "value": "9"}],
                },
            }
        ],
        "uniqueSellingPoint": "Grippy outsole",
        "topFeatures": ["Waterproof", "Breathable"],
        "techSpecs": ["Weight: 240g"],
        "sharedAttributes": [{"name": "Material", "values": ["Mesh", "Rubber"]}],
    }


@pytest.fixture
def sample_tenant_product():
    """Tenant GraphQL product node, images/variants already flattened."""
    return {
        "id": "gid://shopify/Product/500",
        "title": "Cotton Tee",
        "description": "Soft cotton t-shirt",
        "handle": "cotton-tee",
        "featuredImage": {"url": "https://cdn.shop.test/tee.jpg", "altText": None},
        "images": [
            {"url": "https://cdn.shop.test/tee.jpg", "altText": None},
            {"url": "https://cdn.shop.test/tee-back.jpg", "altText": "Back"},
        ],
        "priceRange": {
            "minVariantPrice": {"amount": "15.0", "currencyCode": "EUR"},
            "maxVariantPrice": {"amount": "20.0", "currencyCode": "EUR"},
        },
        "variants": [
            {
                "id": "gid://shopify/ProductVariant/1",
                "title": "Red / S",
                "price": "15.00",
                "availableForSale": False,
                "selectedOptions": [{"name": "Color", "value": "Red"}, {"name": "Size", "value": "S"}],
            },
            {
                "id": "gid://shopify/ProductVariant/2",
                "title": "Red / M",
                "price": "18.00",
                "availableForSale": True,
                "selectedOptions": [{"name": "Color", "value": "Red"}, {"name": "Size", "value": "M"}],
            },
            {
                "id": "gid://shopify/ProductVariant/3",
                "title": "Blue / S",
                "price": "20.00",
                "availableForSale": True,
                "selectedOptions": [{"name": "Color", "value": "Blue"}, {"name": "Size", "value": "S"}],
            },
        ],
        "options": [
            {"name": "Color", "values": ["Red", "Blue"]},
            {"name": "Size", "values": ["S", "M"]},
        ],
        "onlineStoreUrl": "https://test-store.myshopify.com/products/cotton-tee",
        "tags": ["apparel", "summer"],
    }


def make_product(product_id: str, available: bool = True, scope: str = "global", **kwargs):
    """Canonical Product with minimal fields."""
    from app.schemas.products import Product
    return Product(id=product_id, title=product_id, available_for_sale=available, scope=scope, **kwargs)
