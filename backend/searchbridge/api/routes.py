"""
Main API router configuration.
"""

from fastapi import APIRouter
from searchbridge.api.endpoints import search, admin

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(search.router, prefix="/search", tags=["search"])
api_router.include_router(admin.router, prefix="/admin", tags=["administration"])
