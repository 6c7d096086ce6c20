"""
Incremental sync: keeps engine documents in step with catalog changes.
"""

from enum import Enum
from typing import Any, Dict

from loguru import logger

from searchbridge.services.collections import CollectionType
from searchbridge.services.indexer import CatalogIndexer


class ChangeAction(str, Enum):
    SAVED = "saved"
    DELETED = "deleted"
    RESTORED = "restored"


class CatalogSync:
    """Translates catalog change events into index or delete calls."""

    def __init__(self, indexer: CatalogIndexer):
        self.indexer = indexer

    async def on_product_saved(self, item_id: int) -> Dict[str, Any]:
        item = await self.indexer.load_row(CollectionType.PRODUCTS, item_id)
        if not item.is_published:
            # Drafts and private products must not stay searchable
            logger.info(f"Product {item_id} is '{item.status}', removing it from the index")
            return await self.indexer.delete_item(CollectionType.PRODUCTS, item_id)
        return await self.indexer.index_item(CollectionType.PRODUCTS, item_id)

    async def on_product_deleted(self, item_id: int) -> Dict[str, Any]:
        return await self.indexer.delete_item(CollectionType.PRODUCTS, item_id)

    async def on_product_restored(self, item_id: int) -> Dict[str, Any]:
        return await self.on_product_saved(item_id)

    async def on_term_changed(self, collection_type: CollectionType, term_id: int) -> Dict[str, Any]:
        return await self.indexer.index_item(collection_type, term_id)

    async def on_term_deleted(self, collection_type: CollectionType, term_id: int) -> Dict[str, Any]:
        return await self.indexer.delete_item(collection_type, term_id)

    async def handle_change(self, collection_type: CollectionType, item_id: int, action: ChangeAction) -> Dict[str, Any]:
        logger.info(f"Catalog change: {collection_type.value} {item_id} {action.value}")
        if collection_type is CollectionType.PRODUCTS:
            if action is ChangeAction.SAVED:
                return await self.on_product_saved(item_id)
            elif action is ChangeAction.DELETED:
                return await self.on_product_deleted(item_id)
            elif action is ChangeAction.RESTORED:
                return await self.on_product_restored(item_id)
        elif collection_type in (CollectionType.CATEGORIES, CollectionType.BRANDS):
            if action is ChangeAction.DELETED:
                return await self.on_term_deleted(collection_type, item_id)
            return await self.on_term_changed(collection_type, item_id)
        raise ValueError(f"Unhandled catalog change: {collection_type!r} {action!r}")
