"""
Host content listing.

``ListingPlan`` is the mutable execution plan the storefront builds for a
listing page; ``CatalogListing`` runs it against the catalog database and
fills in the rows plus its own pagination totals, the way a CMS query
object does.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from sqlalchemy import and_, case, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from searchbridge.models.catalog import ContentItem, PRODUCT_CONTENT_TYPE, PUBLISHED_STATUS


@dataclass
class ListingPlan:
    content_type: Optional[str] = PRODUCT_CONTENT_TYPE
    search_text: Optional[str] = None
    page: int = 1
    per_page: int = 12
    # None means "no whitelist"; an empty list matches nothing
    identifiers: Optional[List[str]] = None
    preserve_identifier_order: bool = False
    native_search_enabled: bool = True
    pinning_enabled: bool = True
    only_published: bool = True

    # Filled in by the host after execution
    items: List[ContentItem] = field(default_factory=list)
    found_rows: int = 0
    max_num_pages: int = 0
    executed: bool = False

    @property
    def offset(self) -> int:
        return max(0, (self.page - 1) * self.per_page)


class ListingHost(Protocol):
    async def execute(self, plan: ListingPlan) -> ListingPlan:
        ...


def _parse_identifiers(identifiers: List[str]) -> List[int]:
    ids = []
    for identifier in identifiers:
        value = str(identifier).strip()
        if value.isdigit() and int(value) > 0:
            ids.append(int(value))
    return ids


class CatalogListing:
    """Runs listing plans against the catalog tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _conditions(self, plan: ListingPlan, ids: Optional[List[int]]) -> list:
        conditions = []
        if plan.content_type:
            conditions.append(ContentItem.content_type == plan.content_type)
        if plan.only_published:
            conditions.append(ContentItem.status == PUBLISHED_STATUS)
        if ids is not None:
            conditions.append(ContentItem.id.in_(ids))
        if plan.native_search_enabled and plan.search_text:
            pattern = f"%{plan.search_text.strip()}%"
            conditions.append(
                or_(
                    ContentItem.title.ilike(pattern),
                    ContentItem.description.ilike(pattern),
                    ContentItem.short_description.ilike(pattern),
                )
            )
        return conditions

    async def execute(self, plan: ListingPlan) -> ListingPlan:
        ids: Optional[List[int]] = None
        if plan.identifiers is not None:
            ids = _parse_identifiers(plan.identifiers)

        if ids is not None and not ids:
            # A whitelist with no real keys never falls back to "everything"
            plan.items = []
            plan.found_rows = 0
            plan.max_num_pages = 0
            plan.executed = True
            return plan

        conditions = self._conditions(plan, ids)

        query = select(ContentItem).where(and_(*conditions))
        ordering = []
        if plan.preserve_identifier_order and ids:
            ordering.append(case({item_id: position for position, item_id in enumerate(ids)}, value=ContentItem.id))
        if plan.pinning_enabled:
            ordering.append(desc(ContentItem.is_sticky))
        ordering.extend([ContentItem.menu_order, desc(ContentItem.created_at), desc(ContentItem.id)])
        query = query.order_by(*ordering).offset(plan.offset).limit(plan.per_page)

        result = await self.db.execute(query)
        plan.items = list(result.scalars().all())

        count_query = select(func.count(ContentItem.id)).where(and_(*conditions))
        plan.found_rows = (await self.db.execute(count_query)).scalar() or 0
        plan.max_num_pages = int(math.ceil(plan.found_rows / plan.per_page)) if plan.per_page > 0 else 1
        plan.executed = True

        logger.debug(
            f"Listing fetched {len(plan.items)} of {plan.found_rows} rows "
            f"(page={plan.page}, per_page={plan.per_page})"
        )
        return plan
