"""
Custom exception hierarchy for the federated catalog search backend.

Exceptions are categorized as:
- Caller-facing errors: bad input or quota exceeded, returned immediately
  without touching any upstream
- Upstream errors: one source failed; fatal to that source's path only

SearchAggregator catches upstream errors per source and degrades to an
empty result. Detail lookups let them propagate, since there is no partial
result to fall back to.
"""
from typing import Optional


class CatalogSearchError(Exception):
    """Base exception for the catalog search backend."""
    code = "internal_error"
    status_code = 500


# ============================================
# CALLER-FACING ERRORS
# ============================================
class ValidationError(CatalogSearchError):
    """Invalid or missing input (blank query, malformed filters)."""
    code = "validation_error"
    status_code = 400


class RateLimitError(CatalogSearchError):
    """
    Public endpoint quota exceeded.

    `retry_after` is the number of seconds until the caller's window resets.
    """
    code = "rate_limited"
    status_code = 429

    def __init__(self, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Retry after {retry_after}s")


class NotFoundError(CatalogSearchError):
    """Detail lookup found nothing for the identifier."""
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class TenantSessionError(CatalogSearchError):
    """No tenant session could be resolved for the request."""
    code = "no_session"
    status_code = 401


# ============================================
# UPSTREAM ERRORS - fatal to one source path
# ============================================
class UpstreamError(CatalogSearchError):
    """Base class for failures of an upstream dependency."""
    code = "upstream_error"
    status_code = 502


class UpstreamAuthError(UpstreamError):
    """
    Credential issuance failed.

    Carries the upstream status and raw body for diagnostics.
    """
    code = "upstream_auth_error"

    def __init__(self, status_code: Optional[int], body: str = ""):
        self.upstream_status = status_code
        self.body = body
        super().__init__(f"Catalog token request failed: {status_code} {body}")


class UpstreamRequestError(UpstreamError):
    """
    Non-success or application-level error response from an upstream.

    Typically a transport failure, a 4xx/5xx status, a JSON-RPC `error`
    member or a GraphQL `errors` array.
    """
    code = "upstream_request_error"

    def __init__(
        self,
        service: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        timed_out: bool = False,
    ):
        self.service = service
        self.upstream_status = status_code
        self.body = body
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504
        super().__init__(f"{service} API error: {message}")


class ParseError(UpstreamError):
    """The embedded JSON payload of a catalog RPC response could not be decoded."""
    code = "parse_error"

    def __init__(self, service: str, message: str, raw: Optional[str] = None):
        self.service = service
        self.raw = raw
        super().__init__(f"{service} returned an unparsable payload: {message}")
