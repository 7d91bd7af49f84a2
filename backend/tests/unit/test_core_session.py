"""
Unit tests for tenant session resolution.

Tests shop lookup order (query, header, configured store), host
validation, and that the configured admin token is only ever paired with
the configured store.
"""
from urllib.parse import urlencode

import pytest
from starlette.requests import Request

from app.core.config import Settings
from app.core.session import SHOP_HEADER, TenantSession, normalize_shop_domain, resolve_tenant_session


pytestmark = pytest.mark.unit


def _request(query=None, headers=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/search",
        "query_string": urlencode(query or {}).encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope)


def _settings(store="test-store.myshopify.com", token="shpat_test") -> Settings:
    return Settings(shopify_store_domain=store, shopify_admin_api_token=token)


# ---------------------------------------------------------------------------
# normalize_shop_domain
# ---------------------------------------------------------------------------

class TestNormalizeShopDomain:

    def test_none_and_blank_return_none(self):
        assert normalize_shop_domain(None) is None
        assert normalize_shop_domain("   ") is None

    def test_bare_name_appends_myshopify(self):
        assert normalize_shop_domain("test-store") == "test-store.myshopify.com"

    def test_full_url_reduced_to_host(self):
        assert normalize_shop_domain("https://Test-Store.myshopify.com/") == "test-store.myshopify.com"

    def test_plain_host_kept(self):
        assert normalize_shop_domain("test-store.myshopify.com") == "test-store.myshopify.com"

    @pytest.mark.parametrize("value", [
        "attacker.example/.myshopify.com",
        "attacker.example",
        "test-store.myshopify.com.attacker.example",
        "evil.test-store.myshopify.com",
        "test-store.myshopify.com:8443",
        "user:pass@test-store.myshopify.com",
        "test-store.myshopify.com/admin",
        "test-store.myshopify.com?x=1",
        "test-store.myshopify.com#frag",
        "ftp://test-store.myshopify.com",
        "-store.myshopify.com",
        "test_store.myshopify.com",
    ])
    def test_anything_but_bare_shop_host_rejected(self, value):
        assert normalize_shop_domain(value) is None


# ---------------------------------------------------------------------------
# resolve_tenant_session
# ---------------------------------------------------------------------------

class TestResolveTenantSession:

    def test_falls_back_to_configured_store(self):
        session = resolve_tenant_session(_request(), _settings())

        assert session == TenantSession(shop="test-store.myshopify.com", access_token="shpat_test")

    def test_query_parameter_used(self):
        session = resolve_tenant_session(_request(query={"shop": "test-store"}), _settings())

        assert session.shop == "test-store.myshopify.com"

    def test_header_used_when_no_query(self):
        request = _request(headers={SHOP_HEADER: "https://test-store.myshopify.com"})

        assert resolve_tenant_session(request, _settings()).shop == "test-store.myshopify.com"

    def test_query_takes_precedence_over_header(self):
        request = _request(query={"shop": "test-store"}, headers={SHOP_HEADER: "other-store"})

        assert resolve_tenant_session(request, _settings()).shop == "test-store.myshopify.com"

    def test_requested_shop_used_when_no_store_configured(self):
        request = _request(headers={SHOP_HEADER: "other-store"})

        session = resolve_tenant_session(request, _settings(store=None))

        assert session.shop == "other-store.myshopify.com"

    def test_no_shop_anywhere_returns_none(self):
        assert resolve_tenant_session(_request(), _settings(store=None)) is None

    def test_no_token_returns_none(self):
        assert resolve_tenant_session(_request(), _settings(token=None)) is None
        assert resolve_tenant_session(_request(), _settings(token="")) is None

    def test_foreign_host_in_query_rejected(self):
        request = _request(query={"shop": "attacker.example/.myshopify.com"})

        assert resolve_tenant_session(request, _settings()) is None

    def test_foreign_host_in_header_rejected_without_configured_store(self):
        request = _request(headers={SHOP_HEADER: "attacker.example/.myshopify.com"})

        assert resolve_tenant_session(request, _settings(store=None)) is None

    def test_other_shop_never_gets_configured_token(self):
        request = _request(headers={SHOP_HEADER: "other-store.myshopify.com"})

        assert resolve_tenant_session(request, _settings()) is None

    def test_invalid_shop_does_not_fall_back_to_configured_store(self):
        request = _request(query={"shop": "test-store.myshopify.com:8443"})

        assert resolve_tenant_session(request, _settings()) is None
