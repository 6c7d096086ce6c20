import dataclasses
from types import SimpleNamespace

import httpx
import pytest

from searchbridge.services.listing import CatalogListing, ListingPlan
from searchbridge.services.reconciler import (
    SENTINEL_ID,
    FetchSpec,
    ReconciliationState,
    ResultReconciler,
    TotalsOverride,
    clamp_page_size,
    order_by_identifiers,
)
from searchbridge.services.search_results import SearchResultPage
from searchbridge.utils.exceptions import InvalidInputError

from factories import create_test_products
from fake_engine import search_payload


class ShufflingHost:
    """Host listing that returns whitelisted rows in reverse order and recomputes its own totals."""

    def __init__(self, ids):
        self.rows = {str(i): SimpleNamespace(id=i) for i in ids}
        self.seen_plans = []

    async def execute(self, plan: ListingPlan) -> ListingPlan:
        self.seen_plans.append(dataclasses.replace(plan))
        matching = [i for i in plan.identifiers if i in self.rows]
        plan.items = [self.rows[i] for i in reversed(matching)]
        plan.found_rows = len(plan.items)
        plan.max_num_pages = 1
        plan.executed = True
        return plan


def _ids(start, end):
    return [str(i) for i in range(start, end + 1)]


@pytest.mark.asyncio
async def test_second_page_uses_engine_order_and_totals(engine_client, fake_engine):
    fake_engine.search_responses["products"] = search_payload(_ids(13, 24), found=30, page=2)
    host = ShufflingHost(range(1, 31))
    plan = ListingPlan(search_text="redmi", page=2, per_page=12)

    reconciler = ResultReconciler(engine_client)
    listing = await reconciler.reconcile("redmi", 2, 12, plan, host)

    assert listing.total_count == 30
    assert listing.total_pages == 3
    assert listing.ordered_identifiers == _ids(13, 24)
    assert listing.current_page == 2
    assert listing.page_size == 12
    # Host returned them reversed; the reconciler re-sorts
    assert [str(item.id) for item in listing.items] == _ids(13, 24)

    # The engine did the paging
    params = fake_engine.search_requests()[-1].url.params
    assert params["page"] == "2"
    assert params["per_page"] == "12"
    assert params["q"] == "redmi"

    # The host fetched page 1 of exactly these ids, without its own search or pinning
    seen = host.seen_plans[0]
    assert seen.page == 1
    assert seen.offset == 0
    assert seen.per_page == 12
    assert seen.identifiers == _ids(13, 24)
    assert seen.preserve_identifier_order is True
    assert seen.native_search_enabled is False
    assert seen.pinning_enabled is False
    assert seen.content_type == "product"

    # Totals were overridden after the host recomputed its own
    assert plan.page == 2
    assert plan.found_rows == 30
    assert plan.max_num_pages == 3

    assert reconciler.history == [
        ReconciliationState.IDLE,
        ReconciliationState.QUERY_COMPOSED,
        ReconciliationState.ENGINE_CALLED,
        ReconciliationState.ENGINE_SUCCEEDED,
        ReconciliationState.IDENTIFIERS_INJECTED,
        ReconciliationState.HOST_FETCH_EXECUTED,
        ReconciliationState.TOTALS_OVERRIDDEN,
        ReconciliationState.DONE,
    ]


@pytest.mark.asyncio
async def test_total_count_is_engine_found_not_hit_count(engine_client, fake_engine):
    fake_engine.search_responses["products"] = search_payload(["4", "9"], found=250)

    listing = await ResultReconciler(engine_client).reconcile("phone", 1, 12, ListingPlan(), ShufflingHost(range(1, 20)))

    assert listing.fallback is False
    assert len(listing.items) == 2
    assert listing.total_count == 250
    assert listing.total_pages == 21


@pytest.mark.asyncio
async def test_no_results_injects_sentinel_and_fetches_nothing(engine_client, fake_engine, db_session):
    await create_test_products(db_session, 3, prefix="zzzznoresult")
    fake_engine.search_responses["products"] = search_payload([], found=0)
    plan = ListingPlan(search_text="zzzznoresult")

    reconciler = ResultReconciler(engine_client)
    listing = await reconciler.reconcile("zzzznoresult", 1, 12, plan, CatalogListing(db_session))

    assert listing.ordered_identifiers == [SENTINEL_ID]
    assert listing.total_count == 0
    assert listing.total_pages == 0
    assert listing.items == []
    assert plan.identifiers == [SENTINEL_ID]
    assert plan.found_rows == 0
    assert reconciler.state is ReconciliationState.DONE
    assert ReconciliationState.ENGINE_SUCCEEDED in reconciler.history
    assert ReconciliationState.FALLBACK_EMPTY not in reconciler.history


@pytest.mark.asyncio
async def test_engine_timeout_falls_back_to_empty_page(engine_client, fake_engine):
    fake_engine.fail_with = httpx.ReadTimeout("timed out")
    host = ShufflingHost(range(1, 10))
    plan = ListingPlan(search_text="redmi", page=3)

    reconciler = ResultReconciler(engine_client)
    listing = await reconciler.reconcile("redmi", 3, 12, plan, host)

    assert listing.fallback is True
    assert listing.total_count == 0
    assert listing.items == []
    assert listing.ordered_identifiers == [SENTINEL_ID]
    assert listing.current_page == 3
    assert host.seen_plans[0].identifiers == [SENTINEL_ID]
    assert plan.found_rows == 0
    assert plan.max_num_pages == 0
    assert reconciler.history == [
        ReconciliationState.IDLE,
        ReconciliationState.QUERY_COMPOSED,
        ReconciliationState.ENGINE_CALLED,
        ReconciliationState.ENGINE_FAILED,
        ReconciliationState.FALLBACK_EMPTY,
        ReconciliationState.DONE,
    ]


@pytest.mark.asyncio
async def test_engine_error_status_falls_back_to_empty_page(engine_client, fake_engine):
    fake_engine.fail_with = 500

    listing = await ResultReconciler(engine_client).reconcile("redmi", 1, 12, ListingPlan(), ShufflingHost([1]))

    assert listing.fallback is True
    assert listing.total_count == 0


@pytest.mark.asyncio
async def test_missing_collection_falls_back_to_empty_page(engine_client):
    listing = await ResultReconciler(engine_client).reconcile("redmi", 1, 12, ListingPlan(), ShufflingHost([1]))
    assert listing.fallback is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "requested, sent",
    [(-1, 60), (None, 12), (0, 12), (5, 12), (12, 12), (24, 24)],
)
async def test_page_size_policy_reaches_engine(engine_client, fake_engine, requested, sent):
    fake_engine.search_responses["products"] = search_payload([], found=0)

    listing = await ResultReconciler(engine_client).reconcile("redmi", 1, requested, ListingPlan(), ShufflingHost([]))

    assert listing.fallback is False
    assert listing.page_size == sent
    assert fake_engine.search_requests()[-1].url.params["per_page"] == str(sent)


@pytest.mark.asyncio
async def test_result_window_is_enforced_before_network(engine_client, fake_engine):
    with pytest.raises(InvalidInputError):
        await ResultReconciler(engine_client, max_result_window=10000).reconcile(
            "redmi", 1000, 12, ListingPlan(), ShufflingHost([])
        )
    assert fake_engine.requests == []


@pytest.mark.asyncio
async def test_empty_query_is_rejected_before_network(engine_client, fake_engine):
    with pytest.raises(InvalidInputError):
        await ResultReconciler(engine_client).reconcile("  ", 1, 12, ListingPlan(), ShufflingHost([]))
    assert fake_engine.requests == []


@pytest.mark.asyncio
async def test_reconciler_is_single_use(engine_client, fake_engine):
    fake_engine.search_responses["products"] = search_payload([], found=0)
    reconciler = ResultReconciler(engine_client)
    await reconciler.reconcile("redmi", 1, 12, ListingPlan(), ShufflingHost([]))

    with pytest.raises(RuntimeError):
        await reconciler.reconcile("redmi", 1, 12, ListingPlan(), ShufflingHost([]))


def test_clamp_page_size():
    assert clamp_page_size(-1, minimum=12, fetch_all_cap=60) == 60
    assert clamp_page_size(-5, minimum=12, fetch_all_cap=60) == 12
    assert clamp_page_size(None) == 12
    assert clamp_page_size(100) == 100


def test_totals_override_requires_executed_plan():
    result = SearchResultPage.empty(2, 12)
    plan = ListingPlan()
    FetchSpec.for_result(result).apply_to(plan)

    with pytest.raises(RuntimeError):
        TotalsOverride.for_result(result).apply_to(plan)


def test_fetch_spec_and_override_are_independent_steps():
    result = SearchResultPage.from_engine(search_payload(["5", "2"], found=14), requested_page=2, per_page=12)
    plan = ListingPlan(search_text="redmi", page=2)

    FetchSpec.for_result(result).apply_to(plan)
    assert (plan.page, plan.identifiers, plan.found_rows) == (1, ["5", "2"], 0)

    plan.executed = True
    plan.found_rows = 2
    TotalsOverride.for_result(result).apply_to(plan)
    assert (plan.page, plan.found_rows, plan.max_num_pages) == (2, 14, 2)


def test_result_page_truncates_and_dedupes_hits():
    payload = search_payload(["1", "2", "2", "3", "4"], found=40)
    page = SearchResultPage.from_engine(payload, requested_page=1, per_page=3)

    assert page.document_ids == ["1", "2", "3"]
    assert [hit.rank_position for hit in page.hits] == [0, 1, 2]
    assert page.found == 40
    assert page.total_pages == 14


def test_result_page_rejects_garbage():
    with pytest.raises(ValueError):
        SearchResultPage.from_engine({"hits": "nope"}, 1, 12)


def test_order_by_identifiers_drops_unknown_rows():
    rows = [SimpleNamespace(id=3), SimpleNamespace(id=1), SimpleNamespace(id=99)]
    assert [r.id for r in order_by_identifiers(rows, ["1", "3", "7"])] == [1, 3]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{"found": 3, "hits": ["oops"]}, {"found": 3, "hits": [{"document": "oops"}]}, {"found": "many", "hits": []}],
)
async def test_malformed_engine_payload_falls_back_to_empty_page(engine_client, fake_engine, payload):
    fake_engine.search_responses["products"] = payload

    reconciler = ResultReconciler(engine_client)
    listing = await reconciler.reconcile("redmi", 1, 12, ListingPlan(), ShufflingHost([1, 2, 3]))

    assert listing.fallback is True
    assert listing.total_count == 0
    assert ReconciliationState.ENGINE_FAILED in reconciler.history


@pytest.mark.asyncio
async def test_undecodable_engine_body_falls_back_to_empty_page(engine_client, fake_engine):
    fake_engine.fail_with = httpx.DecodingError("Error -3 while decompressing data")

    listing = await ResultReconciler(engine_client).reconcile("redmi", 1, 12, ListingPlan(), ShufflingHost([1]))

    assert listing.fallback is True
    assert listing.items == []


def test_result_page_rejects_non_object_hits():
    with pytest.raises(ValueError):
        SearchResultPage.from_engine({"found": 1, "hits": ["oops"]}, 1, 12)
    with pytest.raises(ValueError):
        SearchResultPage.from_engine({"found": 1, "hits": [{"document": ["1"]}]}, 1, 12)
