from decimal import Decimal

import pytest

from storefront.catalog import CatalogService, CategoryCatalog, PagingInfo, advance
from storefront.config import Settings
from storefront.domain import Product
from storefront.transforms import seed_catalog


def make(pid, category, price, offer=None):
    return Product(
        id=pid,
        name=pid.upper(),
        category=category,
        price=Decimal(price),
        offer_percentage=Decimal(offer) if offer is not None else None,
    )


def best(count):
    return [make(f"bp-{i}", "Best Products", 10 * (count - i)) for i in range(count)]


@pytest.fixture
def settings():
    return Settings(page_size=6)


# ============ Пагинация ============


def test_advance_detects_repeated_page():
    page = (make("a", "c", 1),)
    first = advance(PagingInfo(), page)
    assert first == PagingInfo(page=2, previous=page, is_paging_end=False)
    assert advance(first, page).is_paging_end


@pytest.mark.asyncio
async def test_full_first_page_then_end(store, settings):
    await seed_catalog(store, best(6))
    catalog = CatalogService(store, settings)

    first = await catalog.fetch_best_products()
    assert len(first.data) == 6
    assert not catalog.paging.is_paging_end

    second = await catalog.fetch_best_products()
    assert second.data == first.data
    assert catalog.paging.is_paging_end
    assert store.query_calls == 2

    third = await catalog.fetch_best_products()
    assert third == second
    assert store.query_calls == 2


@pytest.mark.asyncio
async def test_seven_products_take_three_fetches(store, settings):
    await seed_catalog(store, best(7))
    catalog = CatalogService(store, settings)

    sizes = []
    while not catalog.paging.is_paging_end:
        sizes.append(len((await catalog.fetch_best_products()).data))

    assert sizes == [6, 7, 7]
    assert catalog.paging.page == 4


@pytest.mark.asyncio
async def test_best_products_sorted_by_price(store, settings):
    await seed_catalog(store, best(3) + [make("sp", "Special Products", 1)])
    catalog = CatalogService(store, settings)

    result = await catalog.fetch_best_products()

    assert [p.price for p in result.data] == [Decimal(10), Decimal(20), Decimal(30)]


@pytest.mark.asyncio
async def test_reset_paging(store, settings):
    await seed_catalog(store, best(2))
    catalog = CatalogService(store, settings)
    await catalog.fetch_best_products()
    await catalog.fetch_best_products()
    assert catalog.paging.is_paging_end

    catalog.reset_paging()
    assert catalog.paging == PagingInfo()
    assert len((await catalog.fetch_best_products()).data) == 2


@pytest.mark.asyncio
async def test_query_failure_does_not_advance(store, settings):
    await seed_catalog(store, best(2))
    catalog = CatalogService(store, settings)
    store.fail_queries = True

    result = await catalog.fetch_best_products()

    assert result.is_error
    assert catalog.best_products.value.message == "Service unavailable"
    assert catalog.paging == PagingInfo()


@pytest.mark.asyncio
async def test_special_products_and_best_deals(store, settings):
    await seed_catalog(
        store,
        [
            make("sp-1", "Special Products", 5),
            make("bd-1", "Best Deals", 7, "0.2"),
            make("bp-1", "Best Products", 9),
        ],
    )
    catalog = CatalogService(store, settings)

    special = await catalog.fetch_special_products()
    deals = await catalog.fetch_best_deals()

    assert [p.id for p in special.data] == ["sp-1"]
    assert [p.id for p in deals.data] == ["bd-1"]
    assert catalog.best_deals.value == deals


@pytest.mark.asyncio
async def test_category_splits_offers_from_regular(store, settings):
    await seed_catalog(
        store,
        [
            make("cl-1", "Clothes", 20, "0.1"),
            make("cl-2", "Clothes", 30),
            make("od-1", "Outdoors", 40),
        ],
    )
    clothes = CategoryCatalog(store, "Clothes", settings)

    offers = await clothes.fetch_offer_products()
    regular = await clothes.fetch_best_products()

    assert [p.id for p in offers.data] == ["cl-1"]
    assert [p.id for p in regular.data] == ["cl-2"]
    assert clothes.paging.page == 2


@pytest.mark.asyncio
async def test_malformed_product_does_not_advance(store, settings):
    await store.set("Products", "broken", {"category": "Best Products", "price": 5})
    catalog = CatalogService(store, settings)

    result = await catalog.fetch_best_products()

    assert result.is_error
    assert result.message == "Malformed document"
    assert catalog.paging == PagingInfo()
