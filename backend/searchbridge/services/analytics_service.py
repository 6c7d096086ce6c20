"""
Search analytics: records what shoppers searched for and whether it found anything.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from searchbridge.models.search_log import SearchLog

MIN_LOGGED_QUERY_LENGTH = 2


class AnalyticsService:
    """Fire-and-forget search logging."""

    async def log_search(
        self,
        db: AsyncSession,
        query: str,
        has_results: bool = True,
        user_id: Optional[str] = None,
    ) -> bool:
        """
        Store one search. Never raises.

        Returns:
            True if a row was written
        """
        query = (query or "").strip()
        if len(query) < MIN_LOGGED_QUERY_LENGTH:
            return False

        try:
            db.add(SearchLog(query=query[:255], has_results=bool(has_results), user_id=user_id))
            await db.commit()
            return True
        except Exception as e:
            logger.warning(f"Failed to log search '{query}': {e}")
            try:
                await db.rollback()
            except Exception as rollback_error:
                logger.warning(f"Rollback after failed search log also failed: {rollback_error}")
            return False

    async def top_queries(self, db: AsyncSession, limit: int = 10, zero_results_only: bool = False) -> List[Dict[str, Any]]:
        query = select(SearchLog.query, func.count(SearchLog.id).label("count"))
        if zero_results_only:
            query = query.where(SearchLog.has_results.is_(False))
        query = query.group_by(SearchLog.query).order_by(desc("count")).limit(limit)
        result = await db.execute(query)
        return [{"query": row.query, "count": int(row.count)} for row in result.all()]
