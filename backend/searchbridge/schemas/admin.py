"""
Pydantic schemas for collection administration.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from searchbridge.services.collections import CollectionType
from searchbridge.services.sync_service import ChangeAction


class ConnectionResponse(BaseModel):
    ok: bool
    url: str
    message: str


class CollectionStatus(BaseModel):
    type: CollectionType
    name: str
    exists: bool
    documents: int = 0


class CollectionStatusResponse(BaseModel):
    collections: List[CollectionStatus]


class SyncResponse(BaseModel):
    success: bool
    total_indexed: int
    errors: List[str] = []
    message: str


class CatalogChangeRequest(BaseModel):
    collection: CollectionType
    item_id: int = Field(..., ge=1)
    action: ChangeAction


class TopQuery(BaseModel):
    query: str
    count: int


class TopQueriesResponse(BaseModel):
    queries: List[TopQuery]
    zero_results_only: bool = False
    limit: Optional[int] = None
