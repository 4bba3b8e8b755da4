import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from decimal import Decimal

import pytest

from storefront.docstore import DocumentStore, DocumentStoreError
from storefront.domain import Address, CartLineItem, Product, UserContext


class FlakyStore(DocumentStore):
    """Хранилище, в котором можно «уронить» запись или чтение"""

    def __init__(self, message: str = "Service unavailable", **kwargs):
        super().__init__(**kwargs)
        self.message = message
        self.fail_commits = False
        self.fail_queries = False
        self.query_calls = 0

    def _commit(self, writes, reads=None, collection_reads=None):
        if self.fail_commits:
            raise DocumentStoreError(self.message)
        super()._commit(writes, reads, collection_reads)

    def _run_query(self, query):
        if self.fail_queries:
            raise DocumentStoreError(self.message)
        return super()._run_query(query)

    async def query(self, query):
        self.query_calls += 1
        return await super().query(query)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def user():
    return UserContext(uid="u1")


@pytest.fixture
def shirt():
    return Product(
        id="p1",
        name="Shirt",
        category="Clothes",
        price=Decimal("100"),
        offer_percentage=Decimal("0.5"),
        colors=(-1, -16777216),
        sizes=("M", "L"),
        images=("https://img/shirt.png",),
    )


@pytest.fixture
def lamp():
    return Product(
        id="p2",
        name="Lamp",
        category="Furniture",
        price=Decimal("50"),
        images=("https://img/lamp.png",),
    )


@pytest.fixture
def shirt_item(shirt):
    return CartLineItem(product=shirt, quantity=2, selected_color=-1, selected_size="M")


@pytest.fixture
def lamp_item(lamp):
    return CartLineItem(product=lamp, quantity=1)


@pytest.fixture
def address():
    return Address(
        address_title="Home",
        full_name="Ana Horvat",
        street="Ilica 1",
        phone="+385911234567",
        city="Zagreb",
        state="Grad Zagreb",
    )
