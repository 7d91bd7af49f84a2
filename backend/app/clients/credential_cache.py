"""
Catalog service credential cache — client-credentials token with early refresh.

The token is cached in-process and reused until it is within the refresh
margin of its expiry. Refresh is single-flight: callers arriving while a
refresh is in flight await that same request instead of issuing their own.
"""
import asyncio
import logging
import time
from typing import Callable, Optional, Tuple

import httpx

from app.core.config import Settings
from app.core.exceptions import UpstreamAuthError

logger = logging.getLogger("credential_cache")

DEFAULT_EXPIRES_IN = 3600
DEFAULT_REFRESH_MARGIN = 5 * 60


class CredentialCache:
    def __init__(
        self,
        token_url: str,
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_margin_seconds: int = DEFAULT_REFRESH_MARGIN,
        timeout: float = 20.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_margin = refresh_margin_seconds
        self._timeout = timeout
        self._clock = clock

        # (token, expires_at_epoch) is replaced as a single tuple so readers
        # never see a token paired with another token's expiry.
        self._state: Tuple[Optional[str], float] = (None, 0.0)
        self._refresh_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialCache":
        return cls(
            token_url=settings.catalog_token_url,
            client_id=settings.catalog_client_id,
            client_secret=settings.catalog_client_secret,
            refresh_margin_seconds=settings.token_refresh_margin_seconds,
            timeout=settings.upstream_timeout_seconds,
        )

    @property
    def expires_at(self) -> float:
        return self._state[1]

    def _cached_token(self) -> Optional[str]:
        token, expires_at = self._state
        if token and self._clock() < expires_at - self._refresh_margin:
            return token
        return None

    async def get_token(self) -> str:
        """Return a valid bearer token, refreshing it if it is missing or about to expire."""
        token = self._cached_token()
        if token:
            return token

        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._refresh())
        task = self._refresh_task

        # shield: a cancelled caller must not cancel the refresh other callers await
        return await asyncio.shield(task)

    def invalidate(self) -> None:
        """Drop the cached token so the next call refreshes."""
        self._state = (None, 0.0)

    async def _refresh(self) -> str:
        token, expires_in = await self._request_token()
        self._state = (token, self._clock() + expires_in)
        logger.info("catalog token refreshed expires_in=%s", expires_in)
        return token

    async def _request_token(self) -> Tuple[str, int]:
        if not (self._client_id and self._client_secret):
            raise UpstreamAuthError(
                None,
                "CATALOG_CLIENT_ID and CATALOG_CLIENT_SECRET env vars are required",
            )

        payload = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._token_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error("catalog token request failed error=%s", exc)
            raise UpstreamAuthError(None, str(exc)) from exc

        if not resp.is_success:
            logger.error("catalog token request rejected status=%s", resp.status_code)
            raise UpstreamAuthError(resp.status_code, resp.text)

        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamAuthError(resp.status_code, resp.text) from exc

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise UpstreamAuthError(resp.status_code, resp.text)

        expires_in = body.get("expires_in") or DEFAULT_EXPIRES_IN
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN

        return token, expires_in
