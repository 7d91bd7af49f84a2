import json
import os
from typing import Optional
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel


load_dotenv()


class Settings(BaseModel):
    # Catalog service (global search via tool-call RPC)
    catalog_client_id: Optional[str] = os.getenv("CATALOG_CLIENT_ID")
    catalog_client_secret: Optional[str] = os.getenv("CATALOG_CLIENT_SECRET")
    catalog_token_url: str = os.getenv(
        "CATALOG_TOKEN_URL",
        "https://api.shopify.com/auth/access_token",
    )
    catalog_api_base: str = os.getenv(
        "CATALOG_API_BASE",
        "https://discover.shopifyapps.com/global",
    )

    @property
    def catalog_rpc_url(self) -> str:
        """Tool-call endpoint of the catalog service."""
        return f"{self.catalog_api_base.rstrip('/')}/mcp"

    # Tenant catalog (shop search via GraphQL Admin API)
    shopify_store_domain: str | None = os.getenv("SHOPIFY_STORE_DOMAIN")
    shopify_admin_api_token: str | None = os.getenv("SHOPIFY_ADMIN_API_TOKEN")
    shopify_api_version: str = os.getenv("SHOPIFY_API_VERSION", "2024-10")

    # Upstream behaviour
    upstream_timeout_seconds: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "20"))
    token_refresh_margin_seconds: int = int(os.getenv("TOKEN_REFRESH_MARGIN_SECONDS", "300"))

    # Search limits
    default_search_limit: int = int(os.getenv("DEFAULT_SEARCH_LIMIT", "10"))
    max_search_limit: int = int(os.getenv("MAX_SEARCH_LIMIT", "50"))
    widget_max_limit: int = int(os.getenv("WIDGET_MAX_LIMIT", "20"))

    # Public widget rate limit
    widget_rate_limit_max: int = int(os.getenv("WIDGET_RATE_LIMIT_MAX", "30"))
    widget_rate_limit_window_seconds: int = int(os.getenv("WIDGET_RATE_LIMIT_WINDOW_SECONDS", "60"))

    # Redis (shared widget rate limit counters)
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # CORS
    cors_origins: list[str] = json.loads(os.getenv("CORS_ORIGINS", '["*"]'))


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = Settings()
