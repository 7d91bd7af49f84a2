"""
Search routes — federated product search.

Provides:
- POST /api/search – global catalog, tenant catalog, or both
"""
from fastapi import APIRouter, Depends

from app.container import get_search_aggregator
from app.schemas.search import SearchRequest, SearchResponse
from app.services.search_service import SearchAggregator

router = APIRouter(prefix="/api/search", tags=["search"])


@router.post(
    "",
    response_model=SearchResponse,
    summary="Search the global catalog and/or the shop's own products",
)
async def search(
    request: SearchRequest,
    aggregator: SearchAggregator = Depends(get_search_aggregator),
) -> SearchResponse:
    """
    A failing source never fails the request: its list comes back empty
    with a zero count while the other source's results are still returned.
    """
    results = await aggregator.search(request)
    return SearchResponse(query=request.query.strip(), scope=request.scope, results=results)
