import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings
from app.core.middleware import apply_cors, register_exception_handlers
from app.routes import api_router, health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan event handler.

    On startup:
    - Report which upstream sources are configured

    On shutdown:
    - Drop expired widget rate limit windows
    """
    logger.info("=== Catalog Search Starting ===")

    if not (settings.catalog_client_id and settings.catalog_client_secret):
        logger.warning("Catalog credentials missing (CATALOG_CLIENT_ID / CATALOG_CLIENT_SECRET); global search will return no results")
    if not settings.shopify_admin_api_token:
        logger.warning("SHOPIFY_ADMIN_API_TOKEN missing; shop search will return no results")

    logger.info("=== Catalog Search Ready ===")

    yield

    logger.info("=== Catalog Search Shutting Down ===")
    logger.info("Shutdown complete")


app = FastAPI(title="Catalog Search Backend", lifespan=lifespan)
logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")

apply_cors(app, settings.cors_origins)
register_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router)
