"""
Catalog service client — tool-call RPC over HTTP with bearer auth.

Responses are decoded in two stages:
1. the outer JSON-RPC envelope (`result` / `error`)
2. the tool payload, a JSON document embedded as text in `result.content[0]`
"""
import itertools
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import httpx

from app.clients.credential_cache import CredentialCache
from app.core.config import Settings
from app.core.exceptions import (
    NotFoundError,
    ParseError,
    UpstreamRequestError,
    ValidationError,
)
from app.schemas.upstream import GlobalRawProduct, GlobalSearchResult

logger = logging.getLogger("catalog_client")

SERVICE = "Catalog"
MAX_LIMIT = 50

SEARCH_TOOL = "search_global_products"
DETAILS_TOOL = "get_global_product_details"

# e.g. gid://shopify/p/ABC123 -> ABC123
_UPID_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://[^/]+/p/")


def extract_upid(identifier: Optional[str]) -> Optional[str]:
    """Strip a `<scheme>://<namespace>/p/` prefix; bare UPIDs pass through."""
    if not identifier:
        return None
    identifier = identifier.strip()
    return _UPID_PREFIX.sub("", identifier, count=1)


class CatalogClient:
    def __init__(
        self,
        credentials: CredentialCache,
        rpc_url: str,
        timeout: float = 20.0,
    ) -> None:
        self._credentials = credentials
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._request_ids = itertools.count(1)

    @classmethod
    def from_settings(cls, settings: Settings, credentials: CredentialCache) -> "CatalogClient":
        return cls(
            credentials=credentials,
            rpc_url=settings.catalog_rpc_url,
            timeout=settings.upstream_timeout_seconds,
        )

    def _envelope(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "method": "tools/call",
            "id": next(self._request_ids),
            "params": {"name": tool_name, "arguments": arguments},
        }

    async def call(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """Invoke a catalog tool and return its decoded payload (None when the result is empty)."""
        token = await self._credentials.get_token()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        logger.info("catalog request tool=%s", tool_name)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._rpc_url, headers=headers, json=self._envelope(tool_name, arguments))
        except httpx.TimeoutException as exc:
            raise UpstreamRequestError(SERVICE, f"{tool_name} timed out", timed_out=True) from exc
        except httpx.RequestError as exc:
            raise UpstreamRequestError(SERVICE, f"network error: {exc}") from exc

        logger.info("catalog response status=%s tool=%s", resp.status_code, tool_name)
        if resp.status_code == 401:
            self._credentials.invalidate()
        if resp.status_code >= 400:
            raise UpstreamRequestError(
                SERVICE,
                f"request failed: {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            envelope = resp.json()
        except ValueError as exc:
            raise ParseError(SERVICE, "response body is not JSON", raw=resp.text) from exc

        if not isinstance(envelope, dict):
            raise ParseError(SERVICE, "response body is not a JSON object", raw=resp.text)

        if envelope.get("error"):
            raise UpstreamRequestError(
                SERVICE,
                json.dumps(envelope["error"]),
                status_code=resp.status_code,
                body=resp.text,
            )

        return self.decode_tool_payload(envelope)

    @staticmethod
    def decode_tool_payload(envelope: Dict[str, Any]) -> Any:
        """Decode the tool payload embedded as text inside `result.content[0]`."""
        result = envelope.get("result") or {}
        if not isinstance(result, dict):
            raise ParseError(SERVICE, "`result` is not an object")

        content = result.get("content") or []
        first = content[0] if isinstance(content, list) and content else None
        text = first.get("text") if isinstance(first, dict) else None

        if result.get("isError"):
            raise UpstreamRequestError(SERVICE, str(text or "tool call reported an error"))

        if text is None:
            return None
        if not isinstance(text, str):
            return text
        try:
            return json.loads(text)
        except ValueError as exc:
            raise ParseError(SERVICE, str(exc), raw=text) from exc

    async def search_global_products(
        self,
        query: str,
        context: Optional[str] = None,
        limit: int = 10,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        ships_to: Optional[str] = None,
        include_secondhand: Optional[bool] = None,
    ) -> GlobalSearchResult:
        if not query or not query.strip():
            raise ValidationError("Search query is required")

        arguments: Dict[str, Any] = {"query": query, "limit": min(limit, MAX_LIMIT)}
        if context:
            arguments["context"] = context
        if min_price is not None:
            arguments["min_price"] = min_price
        if max_price is not None:
            arguments["max_price"] = max_price
        if ships_to:
            arguments["ships_to"] = ships_to
        if include_secondhand is not None:
            arguments["include_secondhand"] = include_secondhand

        payload = await self.call(SEARCH_TOOL, arguments)
        if payload is None:
            return GlobalSearchResult()
        if not isinstance(payload, dict):
            raise ParseError(SERVICE, f"{SEARCH_TOOL} payload is not an object")

        offers = payload.get("offers") or []
        return GlobalSearchResult(
            offers=[offer for offer in offers if isinstance(offer, dict)],
            instructions=payload.get("instructions") or "",
        )

    async def get_global_product_details(
        self,
        upid: str,
        product_options: Optional[Iterable[Any]] = None,
    ) -> GlobalRawProduct:
        clean_upid = extract_upid(upid)
        if not clean_upid:
            raise ValidationError("UPID is required")

        arguments: Dict[str, Any] = {"upid": clean_upid}
        options = _option_filters(product_options)
        if options:
            arguments["product_options"] = options

        payload = await self.call(DETAILS_TOOL, arguments)
        if not payload:
            raise NotFoundError("Product", clean_upid)
        if not isinstance(payload, dict):
            raise ParseError(SERVICE, f"{DETAILS_TOOL} payload is not an object")
        return payload


def _option_filters(product_options: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    filters = []
    for option in product_options or []:
        if hasattr(option, "model_dump"):
            option = option.model_dump()
        filters.append({"key": option.get("key"), "values": list(option.get("values") or [])})
    return filters
