"""
Catalog indexer: pushes catalog rows into the engine collections.
"""

import time
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from searchbridge.core.config import settings
from searchbridge.core.logging import log_service_call
from searchbridge.models.catalog import (
    Brand,
    Category,
    ContentItem,
    PRODUCT_CONTENT_TYPE,
    PUBLISHED_STATUS,
    item_brands,
    item_categories,
)
from searchbridge.services.collections import CollectionType, prepare_document
from searchbridge.services.engine_client import EngineClient
from searchbridge.utils.exceptions import (
    CatalogItemNotFoundError,
    EngineConnectionError,
    EngineError,
    PartialImportFailure,
)


def _row_model(collection_type: CollectionType) -> Type:
    if collection_type is CollectionType.PRODUCTS:
        return ContentItem
    elif collection_type is CollectionType.CATEGORIES:
        return Category
    elif collection_type is CollectionType.BRANDS:
        return Brand
    raise ValueError(f"Unhandled collection type: {collection_type!r}")


class CatalogIndexer:
    """Indexes products, categories and brands from the catalog database."""

    def __init__(self, engine: EngineClient, db: AsyncSession):
        self.engine = engine
        self.db = db

    def _collection(self, collection_type: CollectionType) -> str:
        return self.engine.collection_name(collection_type.base_name)

    def _rows_query(self, collection_type: CollectionType):
        model = _row_model(collection_type)
        query = select(model)
        if collection_type is CollectionType.PRODUCTS:
            query = query.where(
                and_(
                    ContentItem.content_type == PRODUCT_CONTENT_TYPE,
                    ContentItem.status == PUBLISHED_STATUS,
                )
            )
        return query.order_by(model.id)

    async def _term_counts(self, collection_type: CollectionType) -> Dict[int, int]:
        """Published products per category or brand id."""
        if collection_type is CollectionType.CATEGORIES:
            table, column = item_categories, item_categories.c.category_id
        elif collection_type is CollectionType.BRANDS:
            table, column = item_brands, item_brands.c.brand_id
        else:
            return {}

        query = (
            select(column, func.count(ContentItem.id))
            .select_from(table.join(ContentItem, ContentItem.id == table.c.item_id))
            .where(
                and_(
                    ContentItem.content_type == PRODUCT_CONTENT_TYPE,
                    ContentItem.status == PUBLISHED_STATUS,
                )
            )
            .group_by(column)
        )
        result = await self.db.execute(query)
        return {int(term_id): int(count) for term_id, count in result.all()}

    def _prepare(self, collection_type: CollectionType, row: Any, counts: Dict[int, int]) -> Dict[str, Any]:
        return prepare_document(collection_type, row, sale_boost=settings.SALE_BOOST, term_counts=counts)

    async def index_all(self, collection_type: CollectionType, batch_size: Optional[int] = None) -> Dict[str, Any]:
        """
        Index every row of a collection type in batches.

        A failing batch does not stop the run; its error is collected and
        the next batch is attempted.

        Returns:
            Dictionary with success flag, total_indexed, errors and message
        """
        batch_size = batch_size or settings.INDEX_BATCH_SIZE
        if batch_size < 1:
            raise ValueError("batch_size must be positive")

        collection = self._collection(collection_type)
        counts = await self._term_counts(collection_type)
        total_indexed = 0
        errors: List[str] = []
        offset = 0
        start = time.time()

        while True:
            result = await self.db.execute(self._rows_query(collection_type).offset(offset).limit(batch_size))
            rows = list(result.scalars().all())
            if not rows:
                break
            offset += len(rows)

            documents = [self._prepare(collection_type, row, counts) for row in rows]
            try:
                total_indexed += await self.engine.import_documents(collection, documents)
            except PartialImportFailure as e:
                total_indexed += e.success_count
                errors.append(e.message)
                logger.warning(f"Partial import into {collection}: {e.message}")
            except (EngineConnectionError, EngineError) as e:
                errors.append(e.message)
                logger.error(f"Batch import into {collection} failed: {e.message}")

            if len(rows) < batch_size:
                break

        log_service_call(
            "indexer",
            f"index_all_{collection_type.value}",
            (time.time() - start) * 1000,
            success=not errors,
            total_indexed=total_indexed,
            error_count=len(errors),
        )

        return {
            "success": True,
            "total_indexed": total_indexed,
            "errors": errors,
            "message": f"Indexed {total_indexed} {collection_type.value}.",
        }

    async def load_row(self, collection_type: CollectionType, item_id: int) -> Any:
        model = _row_model(collection_type)
        row = await self.db.get(model, item_id)
        if row is None or (
            collection_type is CollectionType.PRODUCTS and row.content_type != PRODUCT_CONTENT_TYPE
        ):
            raise CatalogItemNotFoundError(collection_type.label, item_id)
        return row

    async def index_item(self, collection_type: CollectionType, item_id: int) -> Dict[str, Any]:
        row = await self.load_row(collection_type, item_id)
        counts = await self._term_counts(collection_type)
        document = self._prepare(collection_type, row, counts)
        return await self.engine.upsert_document(self._collection(collection_type), document)

    async def delete_item(self, collection_type: CollectionType, item_id: int) -> Dict[str, Any]:
        return await self.engine.delete_document(self._collection(collection_type), str(item_id))
