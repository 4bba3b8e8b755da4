import os
from datetime import datetime
from decimal import Decimal

import pytest

from storefront.constants import PRODUCT_COLLECTION
from storefront.docstore import DocumentSnapshot
from storefront.orders import create_order
from storefront.transforms import (
    line_item_from_snapshot,
    line_item_to_document,
    load_seed,
    order_from_document,
    order_to_document,
    product_from_document,
    seed_catalog,
)

SEED_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "catalog.json")


def test_cart_document_shape(shirt_item):
    doc = line_item_to_document(shirt_item)

    assert doc["product"]["id"] == "p1"
    assert doc["product"]["colors"] == [-1, -16777216]
    assert doc["quantity"] == 2
    assert doc["selected_size"] == "M"


def test_snapshot_binds_document_id(shirt_item):
    snapshot = DocumentSnapshot(
        id="doc-7", collection="user/u1/cart", data=line_item_to_document(shirt_item)
    )
    item = line_item_from_snapshot(snapshot)

    assert item == shirt_item
    assert item.document_id == "doc-7"


def test_product_optional_fields_default():
    product = product_from_document(
        {"id": "x", "name": "X", "category": "c", "price": "12.50"}
    )
    assert product.price == Decimal("12.50")
    assert product.offer_percentage is None
    assert product.colors is None
    assert product.images == ()


def test_order_document_keeps_status_text(shirt_item, lamp_item, address):
    order = create_order(
        (shirt_item, lamp_item), Decimal("150"), address, datetime(2024, 1, 2), 77
    )
    doc = order_to_document(order)

    assert doc["order_status"] == "Ordered"
    assert doc["address"]["city"] == "Zagreb"
    assert order_from_document(doc) == order


def test_load_seed():
    products = load_seed(SEED_PATH)

    assert len(products) == 15
    assert len({p.id for p in products}) == 15
    assert all(isinstance(p.price, Decimal) for p in products)
    categories = {p.category for p in products}
    assert {"Special Products", "Best Deals", "Best Products"} <= categories


@pytest.mark.asyncio
async def test_seed_catalog_uses_product_ids(store, shirt, lamp):
    count = await seed_catalog(store, [shirt, lamp])

    assert count == 2
    stored = await store.get(PRODUCT_COLLECTION, "p1")
    assert product_from_document(stored.data) == shirt
