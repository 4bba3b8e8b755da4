import logging
import random
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence, Tuple

import pydantic

from .addresses import validate_address
from .constants import MALFORMED_DOCUMENT, ORDERS_COLLECTION, cart_path, user_orders_path
from .docstore import DocumentStore, DocumentStoreError, Transaction
from .domain import Address, CartLineItem, Order, OrderStatus, UserContext
from .errors import ValidationError
from .frp import StateFlow
from .ftypes import Either, Resource
from .transforms import order_from_document, order_to_document

logger = logging.getLogger(__name__)

ORDER_DATE_FORMAT = "%Y-%m-%d"
ORDER_ID_RANGE = 100_000_000_000
CART_CHANGED = "Cart changed during checkout"


def generate_order_id(total: Decimal, rng: Optional[random.Random] = None) -> int:
    """Номер для показа пользователю; коллизии не исключаются"""
    rng = rng or random.Random()
    return rng.randrange(ORDER_ID_RANGE) + int(total)


def create_order(
    line_items: Sequence[CartLineItem],
    total: Decimal,
    address: Address,
    now: datetime,
    order_id: int,
) -> Order:
    """Снимок корзины и адреса; total берётся как передан, не пересчитывается"""
    return Order(
        order_status=OrderStatus.ORDERED,
        total_price=total,
        products=tuple(line_items),
        address=address,
        date=now.strftime(ORDER_DATE_FORMAT),
        order_id=order_id,
    )


class OrderWorkflow:
    """
    Оформление заказа одной транзакцией:
      1. заказ в историю пользователя
      2. заказ в общую коллекцию orders
      3. удаление всех документов корзины
    Либо всё, либо ничего. Если корзина в хранилище уже не совпадает
    с переданными позициями (добавили товар, заказ уже оформлен),
    ничего не пишется и возвращается Error.
    """

    def __init__(
        self,
        store: DocumentStore,
        user: UserContext,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[Decimal], int] = generate_order_id,
    ):
        self.store = store
        self.user = user
        self.clock = clock
        self.id_factory = id_factory
        self.order: StateFlow[Resource[Order]] = StateFlow(Resource.unspecified())

    async def place_order(
        self,
        line_items: Sequence[CartLineItem],
        total_price: Decimal,
        address: Address,
    ) -> Either[ValidationError, Resource[Order]]:
        if not line_items:
            return Either.left(ValidationError("Cannot place an order with an empty cart"))
        validated = validate_address(address)
        if validated.is_left:
            return validated

        order = create_order(
            line_items, total_price, address, self.clock(), self.id_factory(total_price)
        )
        document = order_to_document(order)
        user_orders = user_orders_path(self.user.uid)
        cart = cart_path(self.user.uid)

        ordered_ids = {item.document_id for item in line_items}

        async def write_order(transaction: Transaction) -> None:
            cart_docs = await transaction.query(cart)
            # заказ очищает ровно ту корзину, которую содержит
            if {snapshot.id for snapshot in cart_docs} != ordered_ids:
                raise DocumentStoreError(CART_CHANGED)
            transaction.set(user_orders, self.store.new_id(), document)
            transaction.set(ORDERS_COLLECTION, self.store.new_id(), document)
            for snapshot in cart_docs:
                transaction.delete(cart, snapshot.id)

        self.order.emit(Resource.loading())
        try:
            await self.store.run_transaction(write_order)
        except DocumentStoreError as e:
            logger.warning("Placing order for %s failed: %s", self.user.uid, e)
            resource = Resource.error(str(e))
        else:
            logger.info(
                "Order %s placed by %s, total %s", order.order_id, self.user.uid, total_price
            )
            resource = Resource.success(order)
        self.order.emit(resource)
        return Either.right(resource)


class OrderHistory:
    """Заказы пользователя (однократное чтение, без подписки)"""

    def __init__(self, store: DocumentStore, user: UserContext):
        self.store = store
        self.user = user
        self.orders: StateFlow[Resource[Tuple[Order, ...]]] = StateFlow(
            Resource.unspecified()
        )

    async def fetch_orders(self) -> Resource[Tuple[Order, ...]]:
        self.orders.emit(Resource.loading())
        try:
            snapshots = await self.store.query(user_orders_path(self.user.uid))
            orders = tuple(order_from_document(s.data) for s in snapshots)
        except DocumentStoreError as e:
            resource = Resource.error(str(e))
        except pydantic.ValidationError as e:
            logger.warning("Order history of %s has a malformed order: %s", self.user.uid, e)
            resource = Resource.error(MALFORMED_DOCUMENT)
        else:
            resource = Resource.success(orders)
        self.orders.emit(resource)
        return resource
