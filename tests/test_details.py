import pytest

from storefront.constants import cart_path
from storefront.details import DetailsFlow, missing_selection
from storefront.domain import CartLineItem
from storefront.mutations import CartMutationService
from storefront.transforms import line_item_to_document


@pytest.fixture
def details(store, user):
    return DetailsFlow(store, user)


async def cart_lines(store, user):
    return sorted(
        (s.get("selected_color"), s.get("quantity"))
        for s in await store.query(cart_path(user.uid))
    )


@pytest.mark.asyncio
async def test_first_add_creates_document(store, user, details, shirt_item):
    result = await details.add_update_product_in_cart(shirt_item)

    assert result.is_success
    assert result.data.document_id is not None
    assert details.add_to_cart.value == result
    assert await cart_lines(store, user) == [(-1, 2)]


@pytest.mark.asyncio
async def test_same_variant_is_merged(store, user, details, shirt_item):
    await details.add_update_product_in_cart(shirt_item)
    result = await details.add_update_product_in_cart(shirt_item.with_quantity(1))

    assert result.is_success
    assert await cart_lines(store, user) == [(-1, 3)]


@pytest.mark.asyncio
async def test_other_color_is_separate_line(store, user, details, shirt):
    await details.add_update_product_in_cart(
        CartLineItem(shirt, quantity=1, selected_color=-1, selected_size="M")
    )
    await details.add_update_product_in_cart(
        CartLineItem(shirt, quantity=1, selected_color=-16777216, selected_size="M")
    )

    assert await cart_lines(store, user) == [(-16777216, 1), (-1, 1)]


@pytest.mark.asyncio
async def test_match_is_found_among_all_documents(store, user, details, shirt):
    """Совпадающий вариант лежит не в первом документе выборки"""
    red = CartLineItem(shirt, quantity=1, selected_color=-1, selected_size="M")
    black = CartLineItem(shirt, quantity=1, selected_color=-16777216, selected_size="M")
    mutations = CartMutationService(store, user)
    await mutations.add_to_cart(red)
    await mutations.add_to_cart(black)

    await details.add_update_product_in_cart(black)

    assert await cart_lines(store, user) == [(-16777216, 2), (-1, 1)]


@pytest.mark.asyncio
async def test_query_failure_is_error(store, user, details, lamp_item):
    store.fail_queries = True
    states = []
    details.add_to_cart.subscribe(lambda r: states.append(repr(r)), replay=False)

    result = await details.add_update_product_in_cart(lamp_item)

    assert result.is_error
    assert states == ["Loading", "Error(Service unavailable)"]


@pytest.mark.asyncio
async def test_write_failure_is_error(store, user, details, lamp_item):
    await store.add(cart_path(user.uid), line_item_to_document(lamp_item))
    store.fail_commits = True

    result = await details.add_update_product_in_cart(lamp_item)

    assert result.message == "Service unavailable"


def test_missing_selection(shirt, lamp):
    assert missing_selection(shirt, None, "M").value == "Please select a color"
    assert missing_selection(shirt, -1, None).value == "Please select a size"
    assert missing_selection(shirt, -1, "M").is_none()
    assert missing_selection(lamp, None, None).is_none()


@pytest.mark.asyncio
async def test_malformed_cart_document_is_error(store, user, details, lamp_item):
    await store.set(cart_path(user.uid), "broken", {"product": {"id": "p2"}})

    result = await details.add_update_product_in_cart(lamp_item)

    assert result.is_error
    assert result.message == "Malformed document"
    assert len(await store.query(cart_path(user.uid))) == 1
