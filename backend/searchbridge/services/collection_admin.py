"""
Collection administration: create, delete, sync and inspect engine collections.
"""

from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from searchbridge.services.collections import CollectionType, build_schema
from searchbridge.services.engine_client import EngineClient
from searchbridge.services.indexer import CatalogIndexer
from searchbridge.utils.exceptions import EngineConnectionError, EngineError


class CollectionAdmin:
    """Every operation is safe to repeat."""

    def __init__(self, engine: EngineClient):
        self.engine = engine

    def collection_name(self, collection_type: CollectionType) -> str:
        return self.engine.collection_name(collection_type.base_name)

    async def create(self, collection_type: CollectionType) -> Dict[str, Any]:
        name = self.collection_name(collection_type)
        logger.info(f"Creating collection {name}")
        return await self.engine.create_collection(build_schema(collection_type, name))

    async def delete(self, collection_type: CollectionType) -> Dict[str, Any]:
        name = self.collection_name(collection_type)
        logger.info(f"Deleting collection {name}")
        return await self.engine.delete_collection(name)

    async def sync(self, collection_type: CollectionType, db: AsyncSession) -> Dict[str, Any]:
        return await CatalogIndexer(self.engine, db).index_all(collection_type)

    async def status(self) -> List[Dict[str, Any]]:
        """Per collection type: whether it exists and how many documents it holds."""
        collections = await self.engine.retrieve_collections()
        by_name = {collection.get("name"): collection for collection in collections}

        status = []
        for collection_type in CollectionType:
            name = self.collection_name(collection_type)
            existing = by_name.get(name)
            status.append({
                "type": collection_type.value,
                "name": name,
                "exists": existing is not None,
                "documents": int(existing.get("num_documents") or 0) if existing else 0,
            })
        return status

    async def test_connection(self) -> Dict[str, Any]:
        url = self.engine.connection.base_url
        try:
            ok = await self.engine.test_connection()
        except (EngineConnectionError, EngineError) as e:
            logger.warning(f"Engine connection test failed: {e.message}")
            return {"ok": False, "url": url, "message": e.message}
        return {"ok": ok, "url": url, "message": "Connected" if ok else "Engine reported unhealthy"}
