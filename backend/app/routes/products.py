"""
Product detail routes.

Provides:
- GET  /api/products/{upid}    – detail lookup (scope query param, default global)
- POST /api/products/details   – detail lookup with requested product options
"""

from fastapi import APIRouter, Depends, Query

from app.container import get_search_aggregator
from app.schemas.search import DetailScope, ProductDetailsRequest, ProductDetailsResponse
from app.services.search_service import SearchAggregator

router = APIRouter(prefix="/api/products", tags=["products"])


@router.post("/details", response_model=ProductDetailsResponse)
async def get_product_details_with_options(
    request: ProductDetailsRequest,
    aggregator: SearchAggregator = Depends(get_search_aggregator),
) -> ProductDetailsResponse:
    """
    Global scope forwards the options to the catalog service. Shop scope
    selects the first variant that satisfies every requested option.
    """
    product = await aggregator.get_product_details(
        request.upid,
        scope=request.scope,
        product_options=request.product_options,
    )
    return ProductDetailsResponse(product=product)


@router.get("/{upid:path}", response_model=ProductDetailsResponse)
async def get_product_details(
    upid: str,
    scope: DetailScope = Query(default="global"),
    aggregator: SearchAggregator = Depends(get_search_aggregator),
) -> ProductDetailsResponse:
    """Accepts bare UPIDs and fully-qualified `gid://.../p/<upid>` identifiers."""
    product = await aggregator.get_product_details(upid, scope=scope)
    return ProductDetailsResponse(product=product)
