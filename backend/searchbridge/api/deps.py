"""
Shared API dependencies.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from searchbridge.core.config import get_engine_connection, settings
from searchbridge.services.engine_client import EngineClient


def get_engine_client(request: Request) -> EngineClient:
    """The process-wide engine client, created on first use if startup did not."""
    client = getattr(request.app.state, "engine_client", None)
    if client is None:
        client = EngineClient(get_engine_connection())
        request.app.state.engine_client = client
    return client


async def require_admin_key(x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key")) -> None:
    # Bytes, so non-ASCII header values compare instead of raising
    expected = settings.ADMIN_API_KEY.encode("utf-8")
    if not x_admin_key or not secrets.compare_digest(x_admin_key.encode("utf-8"), expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )
