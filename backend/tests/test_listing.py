import pytest

from searchbridge.services.listing import CatalogListing, ListingPlan

from factories import create_test_product, create_test_products


@pytest.mark.asyncio
async def test_native_listing_filters_by_text_and_counts(db_session):
    await create_test_products(db_session, 5, prefix="Redmi")
    await create_test_products(db_session, 2, prefix="Galaxy")

    plan = await CatalogListing(db_session).execute(ListingPlan(search_text="redmi", per_page=2, page=2))

    assert plan.executed is True
    assert plan.found_rows == 5
    assert plan.max_num_pages == 3
    assert len(plan.items) == 2
    assert all("Redmi" in item.title for item in plan.items)


@pytest.mark.asyncio
async def test_native_listing_pins_sticky_items(db_session):
    sticky = await create_test_product(db_session, title="Pinned deal", is_sticky=True)
    await create_test_products(db_session, 3)

    plan = await CatalogListing(db_session).execute(ListingPlan())
    assert plan.items[0].id == sticky.id

    unpinned = await CatalogListing(db_session).execute(ListingPlan(pinning_enabled=False))
    assert unpinned.items[0].id != sticky.id


@pytest.mark.asyncio
async def test_whitelist_respects_given_order(db_session):
    products = await create_test_products(db_session, 4)
    wanted = [str(products[2].id), str(products[0].id), str(products[3].id)]

    plan = ListingPlan(identifiers=wanted, preserve_identifier_order=True, native_search_enabled=False)
    await CatalogListing(db_session).execute(plan)

    assert [str(item.id) for item in plan.items] == wanted
    assert plan.found_rows == 3


@pytest.mark.asyncio
async def test_whitelist_disables_text_predicate_only_when_asked(db_session):
    products = await create_test_products(db_session, 2, prefix="Redmi")
    ids = [str(p.id) for p in products]

    with_search = await CatalogListing(db_session).execute(ListingPlan(identifiers=ids, search_text="xiaomi"))
    assert with_search.items == []

    without_search = await CatalogListing(db_session).execute(
        ListingPlan(identifiers=ids, search_text="xiaomi", native_search_enabled=False)
    )
    assert len(without_search.items) == 2


@pytest.mark.asyncio
async def test_sentinel_only_whitelist_returns_no_rows(db_session):
    await create_test_products(db_session, 3)

    plan = await CatalogListing(db_session).execute(ListingPlan(identifiers=["0"]))

    assert plan.items == []
    assert plan.found_rows == 0
    assert plan.executed is True


@pytest.mark.asyncio
async def test_unpublished_and_other_content_types_are_excluded(db_session):
    await create_test_product(db_session, title="Draft phone", status="draft")
    await create_test_product(db_session, title="About us", content_type="page")
    live = await create_test_product(db_session, title="Live phone")

    plan = await CatalogListing(db_session).execute(ListingPlan())

    assert [item.id for item in plan.items] == [live.id]
