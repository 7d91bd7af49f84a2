"""
Public widget routes — storefront search without a tenant session.

Global catalog only, capped result size, and rate limited per client IP.
"""

from fastapi import APIRouter, Depends, Request

from app.container import get_global_search_aggregator, get_widget_rate_limiter
from app.core.config import get_settings
from app.schemas.search import SearchRequest, WidgetSearchRequest, WidgetSearchResponse
from app.services.search_service import SearchAggregator
from app.utils.rate_limiter import IpRateLimiter

router = APIRouter(prefix="/api/widget", tags=["widget"])


async def enforce_rate_limit(
    request: Request,
    limiter: IpRateLimiter = Depends(get_widget_rate_limiter),
) -> None:
    client_ip = request.client.host if request.client else "unknown"
    limiter.hit(client_ip)


@router.post(
    "/search",
    response_model=WidgetSearchResponse,
    dependencies=[Depends(enforce_rate_limit)],
    summary="Public storefront search (global catalog only)",
)
async def widget_search(
    request: WidgetSearchRequest,
    aggregator: SearchAggregator = Depends(get_global_search_aggregator),
) -> WidgetSearchResponse:
    search_request = SearchRequest(
        **request.model_dump(exclude={"limit"}),
        scope="global",
        limit=min(request.limit, get_settings().widget_max_limit),
    )
    results = await aggregator.search(search_request)
    products = results.global_results.products

    return WidgetSearchResponse(
        query=search_request.query.strip(),
        count=len(products),
        products=products,
        instructions=results.instructions,
    )
