"""
Result reconciliation between the search engine and the host listing.

The engine decides which items make up a page and how many match in
total; the host listing only fetches those rows. Reconciliation is split
into a ``FetchSpec`` handed to the host before it runs and a
``TotalsOverride`` applied after it has computed its own totals.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from loguru import logger

from searchbridge.core.config import settings
from searchbridge.core.logging import log_service_call
from searchbridge.models.catalog import PRODUCT_CONTENT_TYPE
from searchbridge.services.collections import CollectionType
from searchbridge.services.engine_client import EngineClient
from searchbridge.services.listing import ListingHost, ListingPlan
from searchbridge.services.query_composer import QueryComposer
from searchbridge.services.search_results import SearchRequest, SearchResultPage, total_pages
from searchbridge.utils.exceptions import EngineConnectionError, EngineError


# Reserved identifier that never matches a catalog row
SENTINEL_ID = "0"

FETCH_ALL = -1


class ReconciliationState(str, Enum):
    IDLE = "idle"
    QUERY_COMPOSED = "query_composed"
    ENGINE_CALLED = "engine_called"
    ENGINE_SUCCEEDED = "engine_succeeded"
    ENGINE_FAILED = "engine_failed"
    IDENTIFIERS_INJECTED = "identifiers_injected"
    HOST_FETCH_EXECUTED = "host_fetch_executed"
    TOTALS_OVERRIDDEN = "totals_overridden"
    FALLBACK_EMPTY = "fallback_empty"
    DONE = "done"


_TRANSITIONS = {
    ReconciliationState.IDLE: {ReconciliationState.QUERY_COMPOSED},
    ReconciliationState.QUERY_COMPOSED: {ReconciliationState.ENGINE_CALLED},
    ReconciliationState.ENGINE_CALLED: {ReconciliationState.ENGINE_SUCCEEDED, ReconciliationState.ENGINE_FAILED},
    ReconciliationState.ENGINE_SUCCEEDED: {ReconciliationState.IDENTIFIERS_INJECTED},
    ReconciliationState.ENGINE_FAILED: {ReconciliationState.FALLBACK_EMPTY},
    ReconciliationState.IDENTIFIERS_INJECTED: {ReconciliationState.HOST_FETCH_EXECUTED},
    ReconciliationState.HOST_FETCH_EXECUTED: {ReconciliationState.TOTALS_OVERRIDDEN},
    ReconciliationState.TOTALS_OVERRIDDEN: {ReconciliationState.DONE},
    ReconciliationState.FALLBACK_EMPTY: {ReconciliationState.DONE},
    ReconciliationState.DONE: set(),
}


def clamp_page_size(
    per_page: Optional[int],
    *,
    minimum: int = 12,
    fetch_all_cap: int = 60,
) -> int:
    """
    Normalize the host's page size before it reaches the engine.

    ``-1`` ("all") becomes ``fetch_all_cap``; unset, non-positive and
    too-small values are raised to ``minimum``.
    """
    if per_page == FETCH_ALL:
        return fetch_all_cap
    if per_page is None or per_page < minimum:
        return minimum
    return per_page


@dataclass(frozen=True)
class FetchSpec:
    """What the host must fetch: exactly these rows, as page 1 of its own query."""

    identifiers: Tuple[str, ...]
    per_page: int
    original_page: int
    content_type: str = PRODUCT_CONTENT_TYPE

    @classmethod
    def for_result(cls, result: SearchResultPage, content_type: str = PRODUCT_CONTENT_TYPE) -> "FetchSpec":
        identifiers = tuple(result.document_ids) or (SENTINEL_ID,)
        return cls(
            identifiers=identifiers,
            per_page=result.per_page,
            original_page=result.requested_page,
            content_type=content_type,
        )

    def apply_to(self, plan: ListingPlan) -> ListingPlan:
        plan.identifiers = list(self.identifiers)
        plan.preserve_identifier_order = True
        plan.content_type = self.content_type
        # Only this plan loses its text predicate; the engine already filtered
        plan.native_search_enabled = False
        plan.pinning_enabled = False
        plan.page = 1
        plan.per_page = self.per_page
        return plan


@dataclass(frozen=True)
class TotalsOverride:
    """Engine totals written over the host's own after its fetch."""

    found: int
    total_pages: int
    current_page: int

    @classmethod
    def for_result(cls, result: SearchResultPage) -> "TotalsOverride":
        return cls(
            found=result.found,
            total_pages=total_pages(result.found, result.per_page),
            current_page=result.requested_page,
        )

    def apply_to(self, plan: ListingPlan) -> ListingPlan:
        if not plan.executed:
            raise RuntimeError("Totals can only be overridden after the host fetch has run")
        plan.page = self.current_page
        plan.found_rows = self.found
        plan.max_num_pages = self.total_pages
        return plan


@dataclass
class ReconciledListing:
    ordered_identifiers: List[str]
    total_count: int
    page_size: int
    current_page: int
    total_pages: int
    items: List[Any] = field(default_factory=list)
    fallback: bool = False


def order_by_identifiers(items: List[Any], identifiers: List[str]) -> List[Any]:
    """Re-sort host rows into identifier order, dropping rows outside the whitelist."""
    by_id = {str(getattr(item, "id", None)): item for item in items}
    return [by_id[identifier] for identifier in identifiers if identifier in by_id]


class ResultReconciler:
    """
    Maps one engine result page onto a host listing plan.

    One instance serves one listing invocation; ``history`` records the
    states it went through.
    """

    def __init__(
        self,
        engine: EngineClient,
        composer: Optional[QueryComposer] = None,
        *,
        collection_type: CollectionType = CollectionType.PRODUCTS,
        min_per_page: Optional[int] = None,
        fetch_all_cap: Optional[int] = None,
        max_result_window: Optional[int] = None,
    ):
        self.engine = engine
        self.collection_type = collection_type
        self.composer = composer or QueryComposer(
            collection_type,
            preset_prefix=engine.connection.collection_prefix,
            default_per_page=settings.SEARCH_DEFAULT_PER_PAGE,
        )
        self.min_per_page = min_per_page or settings.SEARCH_MIN_PER_PAGE
        self.fetch_all_cap = fetch_all_cap or settings.SEARCH_FETCH_ALL_CAP
        self.max_result_window = max_result_window or settings.ENGINE_MAX_RESULT_WINDOW
        self.state = ReconciliationState.IDLE
        self.history: List[ReconciliationState] = [ReconciliationState.IDLE]

    def _transition(self, new_state: ReconciliationState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid reconciliation transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    async def reconcile(
        self,
        query: str,
        requested_page: Optional[int],
        requested_per_page: Optional[int],
        plan: ListingPlan,
        host: ListingHost,
        *,
        filter_expression: Optional[str] = None,
        sort_expression: Optional[str] = None,
    ) -> ReconciledListing:
        """
        Run the engine search and force ``plan`` to agree with it.

        Engine failures never escape: they degrade to an empty page with a
        zero total. Invalid input (empty query, out-of-window paging) is
        rejected before any network call.
        """
        if self.state is not ReconciliationState.IDLE:
            raise RuntimeError("ResultReconciler instances are single-use")

        per_page = clamp_page_size(requested_per_page, minimum=self.min_per_page, fetch_all_cap=self.fetch_all_cap)
        page = requested_page if requested_page and requested_page > 0 else 1

        request = SearchRequest(
            query=query,
            page=page,
            per_page=per_page,
            filter_expression=filter_expression,
            sort_expression=sort_expression,
        )
        request.validate(self.max_result_window)

        params = self.composer.compose(request.query, request.overrides())
        self._transition(ReconciliationState.QUERY_COMPOSED)

        collection = self.engine.collection_name(self.collection_type.base_name)
        self._transition(ReconciliationState.ENGINE_CALLED)
        start = time.time()
        try:
            payload = await self.engine.search(collection, params.to_query_params())
            result = SearchResultPage.from_engine(payload, page, per_page)
        except (EngineConnectionError, EngineError, ValueError) as e:
            duration_ms = (time.time() - start) * 1000
            logger.warning(f"Engine search failed for '{query}' (page {page}), showing empty listing: {e}")
            log_service_call("engine", "search", duration_ms, success=False, error=str(e))
            self._transition(ReconciliationState.ENGINE_FAILED)
            return await self._fallback_empty(page, per_page, plan, host)

        log_service_call("engine", "search", (time.time() - start) * 1000, found=result.found, hits=len(result.hits))
        self._transition(ReconciliationState.ENGINE_SUCCEEDED)

        fetch_spec = FetchSpec.for_result(result)
        fetch_spec.apply_to(plan)
        self._transition(ReconciliationState.IDENTIFIERS_INJECTED)

        await host.execute(plan)
        self._transition(ReconciliationState.HOST_FETCH_EXECUTED)

        identifiers = list(fetch_spec.identifiers)
        plan.items = order_by_identifiers(plan.items, identifiers)

        override = TotalsOverride.for_result(result)
        override.apply_to(plan)
        self._transition(ReconciliationState.TOTALS_OVERRIDDEN)

        listing = ReconciledListing(
            ordered_identifiers=identifiers,
            total_count=override.found,
            page_size=per_page,
            current_page=override.current_page,
            total_pages=override.total_pages,
            items=list(plan.items),
        )
        self._transition(ReconciliationState.DONE)
        return listing

    async def _fallback_empty(self, page: int, per_page: int, plan: ListingPlan, host: ListingHost) -> ReconciledListing:
        empty = SearchResultPage.empty(page, per_page)
        FetchSpec.for_result(empty).apply_to(plan)
        await host.execute(plan)
        plan.items = []
        TotalsOverride.for_result(empty).apply_to(plan)
        self._transition(ReconciliationState.FALLBACK_EMPTY)

        self._transition(ReconciliationState.DONE)
        return ReconciledListing(
            ordered_identifiers=[SENTINEL_ID],
            total_count=0,
            page_size=per_page,
            current_page=page,
            total_pages=0,
            items=[],
            fallback=True,
        )
