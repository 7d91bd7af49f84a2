"""
Middleware and error rendering for the FastAPI application.

- CORS with configurable origins
- Domain exceptions rendered as {"success": false, "error", "message"}
"""
import logging
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.exceptions import CatalogSearchError, RateLimitError

logger = logging.getLogger(__name__)


def apply_cors(app: FastAPI, origins: Optional[Iterable[str]] = None) -> None:
    """Apply CORS middleware with permissive defaults."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins) if origins else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


async def _handle_catalog_search_error(request: Request, exc: CatalogSearchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request failed path=%s error=%s", request.url.path, exc)
    else:
        logger.info("request rejected path=%s status=%s error=%s", request.url.path, exc.status_code, exc)

    headers = {}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.code, "message": str(exc)},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map the domain exception hierarchy onto HTTP responses."""
    app.add_exception_handler(CatalogSearchError, _handle_catalog_search_error)
