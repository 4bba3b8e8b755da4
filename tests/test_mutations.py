import asyncio

import pytest

from storefront.constants import cart_path
from storefront.mutations import CartMutationService


@pytest.fixture
def service(store, user):
    return CartMutationService(store, user)


async def quantity_of(store, user, doc_id):
    return (await store.get(cart_path(user.uid), doc_id)).get("quantity")


@pytest.mark.asyncio
async def test_add_creates_new_document_every_time(store, user, service, shirt_item):
    first = await service.add_to_cart(shirt_item)
    second = await service.add_to_cart(shirt_item)

    assert first.is_right and second.is_right
    assert first.value.document_id != second.value.document_id
    assert first.value == shirt_item
    assert len(await store.query(cart_path(user.uid))) == 2


@pytest.mark.asyncio
async def test_increase_and_decrease(store, user, service, lamp_item):
    doc_id = (await service.add_to_cart(lamp_item)).value.document_id

    assert (await service.increase_quantity(doc_id)).value == doc_id
    assert await quantity_of(store, user, doc_id) == 2

    await service.decrease_quantity(doc_id)
    await service.decrease_quantity(doc_id)
    # нижняя граница проверяется выше по стеку
    assert await quantity_of(store, user, doc_id) == 0


@pytest.mark.asyncio
async def test_concurrent_increases_are_not_lost(store, user, service, lamp_item):
    doc_id = (await service.add_to_cart(lamp_item)).value.document_id

    results = await asyncio.gather(
        service.increase_quantity(doc_id), service.increase_quantity(doc_id)
    )
    assert all(r.is_right for r in results)
    assert await quantity_of(store, user, doc_id) == 3


@pytest.mark.asyncio
async def test_store_failure_is_left_with_message(store, service, lamp_item):
    doc_id = (await service.add_to_cart(lamp_item)).value.document_id
    store.fail_commits = True

    for result in (
        await service.add_to_cart(lamp_item),
        await service.increase_quantity(doc_id),
        await service.decrease_quantity(doc_id),
        await service.delete_from_cart(doc_id),
    ):
        assert result.is_left
        assert result.value == "Service unavailable"


@pytest.mark.asyncio
async def test_missing_document_is_a_no_op(store, user, service, caplog):
    result = await service.increase_quantity("ghost")

    assert result.is_right
    assert not (await store.get(cart_path(user.uid), "ghost")).exists
    assert "ghost" in caplog.text


@pytest.mark.asyncio
async def test_delete(store, user, service, lamp_item):
    doc_id = (await service.add_to_cart(lamp_item)).value.document_id
    await service.delete_from_cart(doc_id)

    assert await store.query(cart_path(user.uid)) == []


@pytest.mark.asyncio
async def test_decrease_below_zero_is_left(store, user, service, lamp_item):
    doc_id = (await service.add_to_cart(lamp_item)).value.document_id
    await service.decrease_quantity(doc_id)

    result = await service.decrease_quantity(doc_id)

    assert result.is_left
    assert "quantity" in result.value
    assert await quantity_of(store, user, doc_id) == 0
