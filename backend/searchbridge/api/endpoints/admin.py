"""
Collection administration endpoints (guarded by the admin key).
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from searchbridge.api.deps import get_engine_client, require_admin_key
from searchbridge.core.database import get_db
from searchbridge.core.rate_limit import ADMIN_LIMIT, limiter
from searchbridge.schemas.admin import (
    CatalogChangeRequest,
    CollectionStatus,
    CollectionStatusResponse,
    ConnectionResponse,
    SyncResponse,
    TopQueriesResponse,
)
from searchbridge.services.analytics_service import AnalyticsService
from searchbridge.services.collection_admin import CollectionAdmin
from searchbridge.services.collections import CollectionType
from searchbridge.services.engine_client import EngineClient
from searchbridge.services.indexer import CatalogIndexer
from searchbridge.services.sync_service import CatalogSync

router = APIRouter(dependencies=[Depends(require_admin_key)])
analytics_service = AnalyticsService()


@router.get("/connection", response_model=ConnectionResponse)
async def test_connection(engine: EngineClient = Depends(get_engine_client)):
    return await CollectionAdmin(engine).test_connection()


@router.get("/collections/status", response_model=CollectionStatusResponse)
async def collections_status(engine: EngineClient = Depends(get_engine_client)):
    status = await CollectionAdmin(engine).status()
    return CollectionStatusResponse(collections=[CollectionStatus(**item) for item in status])


@router.post("/collections/{collection_type}")
@limiter.limit(ADMIN_LIMIT)
async def create_collection(
    request: Request,
    collection_type: str,
    engine: EngineClient = Depends(get_engine_client),
):
    ctype = CollectionType.parse(collection_type)
    result = await CollectionAdmin(engine).create(ctype)
    return {"type": ctype.value, "result": result}


@router.delete("/collections/{collection_type}")
@limiter.limit(ADMIN_LIMIT)
async def delete_collection(
    request: Request,
    collection_type: str,
    engine: EngineClient = Depends(get_engine_client),
):
    ctype = CollectionType.parse(collection_type)
    result = await CollectionAdmin(engine).delete(ctype)
    return {"type": ctype.value, "result": result}


@router.post("/collections/{collection_type}/sync", response_model=SyncResponse)
@limiter.limit(ADMIN_LIMIT)
async def sync_collection(
    request: Request,
    collection_type: str,
    engine: EngineClient = Depends(get_engine_client),
    db: AsyncSession = Depends(get_db),
):
    ctype = CollectionType.parse(collection_type)
    return await CollectionAdmin(engine).sync(ctype, db)


@router.post("/catalog/changes")
async def catalog_change(
    payload: CatalogChangeRequest,
    engine: EngineClient = Depends(get_engine_client),
    db: AsyncSession = Depends(get_db),
):
    """Apply one catalog change (saved, deleted, restored) to the index."""
    sync = CatalogSync(CatalogIndexer(engine, db))
    result = await sync.handle_change(payload.collection, payload.item_id, payload.action)
    return {"collection": payload.collection.value, "item_id": payload.item_id, "result": result}


@router.get("/analytics/top-queries", response_model=TopQueriesResponse)
async def top_queries(
    limit: int = Query(10, ge=1, le=100),
    zero_results_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    queries = await analytics_service.top_queries(db, limit=limit, zero_results_only=zero_results_only)
    return TopQueriesResponse(queries=queries, zero_results_only=zero_results_only, limit=limit)
