"""
Search service: product listing pages, suggestions and recommendations.
"""

import time
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from searchbridge.core.config import settings
from searchbridge.core.logging import log_service_call
from searchbridge.models.catalog import ContentItem, PRODUCT_CONTENT_TYPE, PUBLISHED_STATUS
from searchbridge.services.collections import CollectionType, prepare_product_document
from searchbridge.services.engine_client import EngineClient
from searchbridge.services.listing import CatalogListing, ListingPlan
from searchbridge.services.query_composer import QueryComposer
from searchbridge.services.reconciler import ReconciledListing, ResultReconciler
from searchbridge.services.search_results import SearchResultPage
from searchbridge.utils.exceptions import EngineConnectionError, EngineError
from searchbridge.utils.formatters import format_product_hit, format_term_hits

SUGGEST_TYPES = ("all", "products", "categories", "brands")


class SearchService:
    """Search operations exposed to the storefront."""

    def __init__(self, engine: EngineClient):
        self.engine = engine

    def _composer(self, collection_type: CollectionType) -> QueryComposer:
        return QueryComposer(
            collection_type,
            preset_prefix=self.engine.connection.collection_prefix,
            default_per_page=settings.SEARCH_DEFAULT_PER_PAGE,
        )

    async def get_product_results(
        self,
        query: str,
        page: int = 1,
        per_page: Optional[int] = None,
        filter_by: Optional[str] = None,
    ) -> SearchResultPage:
        """
        Search products, returning an empty page if the engine fails.

        Args:
            query: Free-text query
            page: 1-based page
            per_page: Hits per page
            filter_by: Optional engine filter expression

        Returns:
            SearchResultPage (empty with found=0 on engine errors)
        """
        per_page = per_page or settings.SEARCH_DEFAULT_PER_PAGE
        params = self._composer(CollectionType.PRODUCTS).compose(
            query,
            {"page": page, "per_page": per_page, "filter_by": filter_by},
        )
        collection = self.engine.collection_name(CollectionType.PRODUCTS.base_name)

        start = time.time()
        try:
            payload = await self.engine.search(collection, params.to_query_params())
            result = SearchResultPage.from_engine(payload, page, per_page)
        except (EngineConnectionError, EngineError, ValueError) as e:
            logger.error(f"Product search failed for '{query}': {e}")
            log_service_call("engine", "search_products", (time.time() - start) * 1000, success=False)
            return SearchResultPage.empty(page, per_page)

        log_service_call("engine", "search_products", (time.time() - start) * 1000, found=result.found)
        return result

    async def search_terms(self, collection_type: CollectionType, query: str, per_page: int) -> List[Dict[str, Any]]:
        """Search categories or brands; engine errors yield an empty list."""
        params = self._composer(collection_type).compose(query, {"per_page": per_page})
        collection = self.engine.collection_name(collection_type.base_name)
        try:
            payload = await self.engine.search(collection, params.to_query_params())
        except (EngineConnectionError, EngineError) as e:
            logger.error(f"{collection_type.label} search failed for '{query}': {e}")
            return []
        return format_term_hits(payload.get("hits") or [])

    async def suggest(self, query: str, suggest_type: str = "all") -> Dict[str, List[Dict[str, Any]]]:
        results: Dict[str, List[Dict[str, Any]]] = {"products": [], "categories": [], "brands": []}
        query = (query or "").strip()
        if not query:
            return results

        if suggest_type in ("all", "products"):
            page = await self.get_product_results(query, per_page=settings.SUGGEST_PRODUCTS_LIMIT)
            results["products"] = [format_product_hit(document) for document in page.documents]

        if suggest_type in ("all", "categories"):
            results["categories"] = await self.search_terms(
                CollectionType.CATEGORIES, query, settings.SUGGEST_CATEGORIES_LIMIT
            )

        if suggest_type in ("all", "brands"):
            results["brands"] = await self.search_terms(
                CollectionType.BRANDS, query, settings.SUGGEST_BRANDS_LIMIT
            )

        return results

    async def recommended_products(self, db: AsyncSession, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Random published, in-stock products for an empty search box."""
        limit = limit or settings.RECOMMENDED_PRODUCTS_LIMIT
        query = (
            select(ContentItem)
            .where(
                and_(
                    ContentItem.content_type == PRODUCT_CONTENT_TYPE,
                    ContentItem.status == PUBLISHED_STATUS,
                    ContentItem.stock_status == "instock",
                )
            )
            .order_by(func.random())
            .limit(limit)
        )
        result = await db.execute(query)
        items = result.scalars().all()
        return [
            format_product_hit(prepare_product_document(item, sale_boost=settings.SALE_BOOST))
            for item in items
        ]

    async def search_listing(
        self,
        db: AsyncSession,
        query: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        filter_by: Optional[str] = None,
    ) -> ReconciledListing:
        """Serve a product listing page whose rows and totals come from the engine."""
        plan = ListingPlan(
            content_type=PRODUCT_CONTENT_TYPE,
            search_text=query,
            page=page or 1,
            per_page=per_page or settings.SEARCH_DEFAULT_PER_PAGE,
        )
        reconciler = ResultReconciler(self.engine)
        return await reconciler.reconcile(
            query,
            page,
            per_page,
            plan,
            CatalogListing(db),
            filter_expression=filter_by,
        )
