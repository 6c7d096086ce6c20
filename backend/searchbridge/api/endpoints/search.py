"""
Storefront search endpoints: suggestions, recommendations, listing pages, logging.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from searchbridge.api.deps import get_engine_client
from searchbridge.core.database import get_db
from searchbridge.core.rate_limit import LOG_LIMIT, SUGGEST_LIMIT, limiter
from searchbridge.schemas.search import (
    ListingItem,
    ListingResponse,
    RecommendedResponse,
    SearchLogRequest,
    SuggestRequest,
    SuggestResponse,
)
from searchbridge.services.analytics_service import AnalyticsService
from searchbridge.services.engine_client import EngineClient
from searchbridge.services.search_service import SearchService

router = APIRouter()
analytics_service = AnalyticsService()


@router.post("/suggest", response_model=SuggestResponse)
@limiter.limit(SUGGEST_LIMIT)
async def suggest(
    request: Request,
    payload: SuggestRequest,
    engine: EngineClient = Depends(get_engine_client),
):
    """Instant suggestions for the search box."""
    results = await SearchService(engine).suggest(payload.query, payload.type)
    return SuggestResponse(**results)


@router.get("/recommended", response_model=RecommendedResponse)
async def recommended(
    engine: EngineClient = Depends(get_engine_client),
    db: AsyncSession = Depends(get_db),
):
    products = await SearchService(engine).recommended_products(db)
    return RecommendedResponse(products=products)


@router.get("/products", response_model=ListingResponse)
async def search_products(
    q: str = Query(..., min_length=1, max_length=200),
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    filter_by: Optional[str] = Query(None, max_length=500),
    engine: EngineClient = Depends(get_engine_client),
    db: AsyncSession = Depends(get_db),
):
    """
    Product listing page for a search query.

    Rows come from the catalog, but which rows, their order and the
    totals come from the engine. ``per_page=-1`` asks for the capped
    "all" page.
    """
    listing = await SearchService(engine).search_listing(db, q, page, per_page, filter_by=filter_by)
    return ListingResponse(
        items=[ListingItem.model_validate(item) for item in listing.items],
        ordered_identifiers=listing.ordered_identifiers,
        total_count=listing.total_count,
        total_pages=listing.total_pages,
        current_page=listing.current_page,
        page_size=listing.page_size,
    )


@router.post("/log")
@limiter.limit(LOG_LIMIT)
async def log_search(
    request: Request,
    payload: SearchLogRequest,
    db: AsyncSession = Depends(get_db),
):
    await analytics_service.log_search(db, payload.query, payload.has_results, payload.user_id)
    return {"status": "ok"}
