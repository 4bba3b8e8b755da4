import json
from dataclasses import asdict
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from .constants import PRODUCT_COLLECTION
from .docstore import DocumentSnapshot, DocumentStore
from .domain import (
    Address,
    CartLineItem,
    Order,
    OrderStatus,
    Product,
    UserProfile,
)
from .schemas import (
    AddressDocument,
    CartProductDocument,
    OrderDocument,
    ProductDocument,
    UserDocument,
)


def _tuple_or_none(values) -> Optional[tuple]:
    return tuple(values) if values is not None else None


# ============ Product ============


def product_from_document(data: dict) -> Product:
    doc = ProductDocument.model_validate(data)
    return Product(
        id=doc.id,
        name=doc.name,
        category=doc.category,
        price=doc.price,
        offer_percentage=doc.offer_percentage,
        description=doc.description,
        colors=_tuple_or_none(doc.colors),
        sizes=_tuple_or_none(doc.sizes),
        images=tuple(doc.images),
    )


def product_to_document(product: Product) -> dict:
    return ProductDocument(
        id=product.id,
        name=product.name,
        category=product.category,
        price=product.price,
        offer_percentage=product.offer_percentage,
        description=product.description,
        colors=list(product.colors) if product.colors is not None else None,
        sizes=list(product.sizes) if product.sizes is not None else None,
        images=list(product.images),
    ).model_dump()


def products_from_snapshots(snapshots: Iterable[DocumentSnapshot]) -> Tuple[Product, ...]:
    return tuple(product_from_document(s.data) for s in snapshots)


# ============ Cart ============


def line_item_to_document(item: CartLineItem) -> dict:
    return CartProductDocument(
        product=product_to_document(item.product),
        quantity=item.quantity,
        selected_color=item.selected_color,
        selected_size=item.selected_size,
    ).model_dump()


def line_item_from_document(data: dict, document_id: Optional[str] = None) -> CartLineItem:
    doc = CartProductDocument.model_validate(data)
    return CartLineItem(
        product=product_from_document(doc.product.model_dump()),
        quantity=doc.quantity,
        selected_color=doc.selected_color,
        selected_size=doc.selected_size,
        document_id=document_id,
    )


def line_item_from_snapshot(snapshot: DocumentSnapshot) -> CartLineItem:
    """document_id привязывается к позиции при чтении"""
    return line_item_from_document(snapshot.data, document_id=snapshot.id)


# ============ Address ============


def address_to_document(address: Address) -> dict:
    return AddressDocument(**asdict(address)).model_dump()


def address_from_document(data: dict) -> Address:
    return Address(**AddressDocument.model_validate(data).model_dump())


# ============ Order ============


def order_to_document(order: Order) -> dict:
    return OrderDocument(
        order_status=order.order_status.value,
        total_price=order.total_price,
        products=[line_item_to_document(item) for item in order.products],
        address=address_to_document(order.address),
        date=order.date,
        order_id=order.order_id,
    ).model_dump()


def order_from_document(data: dict) -> Order:
    doc = OrderDocument.model_validate(data)
    return Order(
        order_status=OrderStatus(doc.order_status),
        total_price=doc.total_price,
        products=tuple(line_item_from_document(p.model_dump()) for p in doc.products),
        address=address_from_document(doc.address.model_dump()),
        date=doc.date,
        order_id=doc.order_id,
    )


# ============ Profile ============


def profile_to_document(profile: UserProfile) -> dict:
    """Бросает pydantic.ValidationError на пустых именах и плохом email"""
    return UserDocument(**asdict(profile)).model_dump()


def profile_from_document(data: dict) -> UserProfile:
    return UserProfile(**UserDocument.model_validate(data).model_dump())


# ============ Seed ============


def load_seed(path: str) -> Tuple[Product, ...]:
    """Загружает каталог из JSON; цены читаются сразу как Decimal"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f, parse_float=Decimal)
    return tuple(map(product_from_document, data.get("products", [])))


async def seed_catalog(store: DocumentStore, products: Iterable[Product]) -> int:
    """Записывает каталог одним батчем, id документа = id товара"""
    batch = store.batch()
    count = 0
    for product in products:
        batch.set(PRODUCT_COLLECTION, product.id, product_to_document(product))
        count += 1
    await batch.commit()
    return count
