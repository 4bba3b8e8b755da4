from dataclasses import replace

import pytest

from storefront.addresses import AddressBook, validate_address
from storefront.constants import address_path


@pytest.fixture
def book(store, user):
    book = AddressBook(store, user)
    yield book
    book.close()


@pytest.mark.asyncio
async def test_added_address_appears_in_live_list(book, address):
    book.start()
    assert book.addresses.value.data == ()

    result = await book.add_address(address)

    assert result.is_right and result.value.is_success
    assert book.addresses.value.data == (address,)
    assert book.add_new_address.value.data == address


@pytest.mark.asyncio
async def test_empty_field_is_rejected_before_the_store(store, user, book, address):
    errors = []
    book.errors.subscribe(errors.append)

    result = await book.add_address(replace(address, street=""))

    assert result.is_left
    assert result.value.message == "All fields are required"
    assert errors == ["All fields are required"]
    assert book.add_new_address.value.is_unspecified
    assert await store.query(address_path(user.uid)) == []


@pytest.mark.asyncio
async def test_store_failure_is_error_resource(store, book, address):
    store.fail_commits = True

    result = await book.add_address(address)

    assert result.is_right
    assert result.value.is_error
    assert book.add_new_address.value.message == "Service unavailable"


@pytest.mark.asyncio
async def test_list_addresses_streams_updates(book, address):
    stream = book.list_addresses()
    assert (await stream.__anext__()).data == ()

    await book.add_address(address)
    assert (await stream.__anext__()).data == (address,)
    await stream.aclose()


def test_whitespace_only_fields_are_invalid(address):
    for field in ("address_title", "full_name", "street", "phone", "city", "state"):
        assert validate_address(replace(address, **{field: "   "})).is_left
    assert validate_address(address).value == address


@pytest.mark.asyncio
async def test_malformed_address_surfaces_as_error(store, user, book):
    book.start()

    await store.set(address_path(user.uid), "broken", {"city": "Zagreb"})

    assert book.addresses.value.is_error
    assert book.addresses.value.message == "Malformed document"
