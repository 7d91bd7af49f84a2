"""
Unit tests for the custom exception hierarchy.

Verifies inheritance chains, attribute assignment, HTTP status mapping and
message formatting for all exception classes in app.core.exceptions.
"""
import pytest

from app.core.exceptions import (
    CatalogSearchError,
    NotFoundError,
    ParseError,
    RateLimitError,
    TenantSessionError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamRequestError,
    ValidationError,
)


pytestmark = pytest.mark.unit


class TestBaseException:
    """Tests for CatalogSearchError base class."""

    def test_is_exception(self):
        assert issubclass(CatalogSearchError, Exception)

    def test_message_preserved(self):
        exc = CatalogSearchError("something went wrong")
        assert str(exc) == "something went wrong"

    def test_defaults_to_internal_error(self):
        assert CatalogSearchError.status_code == 500
        assert CatalogSearchError.code == "internal_error"


class TestCallerFacingErrors:

    @pytest.mark.parametrize(
        "exc_class,status",
        [
            (ValidationError, 400),
            (TenantSessionError, 401),
            (NotFoundError, 404),
            (RateLimitError, 429),
        ],
    )
    def test_status_codes(self, exc_class, status):
        assert issubclass(exc_class, CatalogSearchError)
        assert not issubclass(exc_class, UpstreamError)
        assert exc_class.status_code == status

    def test_rate_limit_retry_after(self):
        exc = RateLimitError(retry_after=42)
        assert exc.retry_after == 42
        assert "42" in str(exc)

    def test_not_found_attributes(self):
        exc = NotFoundError("Product", "ABC123")
        assert exc.resource == "Product"
        assert exc.identifier == "ABC123"
        assert str(exc) == "Product not found: ABC123"


class TestUpstreamErrors:

    @pytest.mark.parametrize("exc_class", [UpstreamAuthError, UpstreamRequestError, ParseError])
    def test_inherit_upstream_error(self, exc_class):
        assert issubclass(exc_class, UpstreamError)
        assert exc_class.status_code == 502

    def test_auth_error_keeps_status_and_body(self):
        exc = UpstreamAuthError(403, "forbidden")
        assert exc.upstream_status == 403
        assert exc.body == "forbidden"
        assert exc.status_code == 502
        assert "403" in str(exc)

    def test_request_error_attributes(self):
        exc = UpstreamRequestError("Shopify", "request failed: 500", status_code=500, body="oops")
        assert exc.service == "Shopify"
        assert exc.upstream_status == 500
        assert exc.body == "oops"
        assert exc.timed_out is False
        assert str(exc) == "Shopify API error: request failed: 500"

    def test_timed_out_maps_to_gateway_timeout(self):
        exc = UpstreamRequestError("Catalog", "request timed out", timed_out=True)
        assert exc.status_code == 504
        assert UpstreamRequestError.status_code == 502

    def test_parse_error_keeps_raw_text(self):
        exc = ParseError("Catalog", "bad json", raw="{oops")
        assert exc.raw == "{oops"
        assert "bad json" in str(exc)
