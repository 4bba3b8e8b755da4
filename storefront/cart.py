import logging
from decimal import Decimal
from typing import AsyncIterator, List, Optional, Tuple

import pydantic

from .constants import MALFORMED_DOCUMENT, cart_path
from .docstore import DocumentSnapshot, DocumentStore, DocumentStoreError, ListenerRegistration
from .domain import CartLineItem, QuantityChange, UserContext
from .frp import ConflatedChannel, StateFlow
from .ftypes import Maybe, Resource
from .mutations import CartMutationService
from .pricing import total_price
from .transforms import line_item_from_snapshot

logger = logging.getLogger(__name__)

CartItems = Tuple[CartLineItem, ...]


def _price_of(resource: Resource[CartItems]) -> Optional[Decimal]:
    return total_price(resource.data) if resource.is_success else None


class CartStore:
    """
    Живая корзина пользователя.

    cart           - Resource со списком позиций, обновляется на каждое изменение
    products_price - сумма корзины, None пока корзина не в Success
    delete_dialog  - запрос подтверждения удаления (одно место, новый заменяет старый)
    """

    def __init__(
        self,
        store: DocumentStore,
        user: UserContext,
        mutations: Optional[CartMutationService] = None,
    ):
        self.store = store
        self.user = user
        self.mutations = mutations or CartMutationService(store, user)
        self.cart: StateFlow[Resource[CartItems]] = StateFlow(Resource.unspecified())
        self.products_price: StateFlow[Optional[Decimal]] = self.cart.map(_price_of)
        self.delete_dialog: ConflatedChannel[CartLineItem] = ConflatedChannel()
        self._registration: Optional[ListenerRegistration] = None
        # последний полученный снимок, по нему ищутся document_id
        self._last_items: CartItems = ()

    # ============ Подписка ============

    def start(self) -> None:
        if self._registration is not None:
            return
        self.cart.emit(Resource.loading())
        self._registration = self.store.listen(cart_path(self.user.uid), self._on_snapshot)

    def close(self) -> None:
        if self._registration is not None:
            self._registration.remove()
            self._registration = None

    @property
    def is_listening(self) -> bool:
        return self._registration is not None

    def subscribe_cart(self) -> AsyncIterator[Resource[CartItems]]:
        self.start()
        return self.cart.collect()

    def _on_snapshot(
        self, snapshots: Optional[List[DocumentSnapshot]], error: Optional[DocumentStoreError]
    ) -> None:
        if error is not None or snapshots is None:
            self.cart.emit(Resource.error(str(error)))
            return
        try:
            items = tuple(map(line_item_from_snapshot, snapshots))
        except pydantic.ValidationError as e:
            logger.warning("Cart of %s has a malformed document: %s", self.user.uid, e)
            self.cart.emit(Resource.error(MALFORMED_DOCUMENT))
            return
        self._last_items = items
        self.cart.emit(Resource.success(self._last_items))

    # ============ Операции ============

    def _resolve(self, item: CartLineItem) -> Maybe[CartLineItem]:
        """Находит позицию в последнем снимке по document_id"""
        if item.document_id is not None:
            found = next(
                (i for i in self._last_items if i.document_id == item.document_id), None
            )
        else:
            found = next((i for i in self._last_items if i == item), None)
        return Maybe.of(found)

    async def change_quantity(self, item: CartLineItem, change: QuantityChange) -> None:
        resolved = self._resolve(item)
        if resolved.is_none():
            logger.warning("Cart item %s is not in the current cart, ignoring", item.product.id)
            return
        line = resolved.value

        if change is QuantityChange.INCREASE:
            self.cart.emit(Resource.loading())
            result = await self.mutations.increase_quantity(line.document_id)
        else:
            if line.quantity <= 1:
                self.delete_dialog.send(line)
                return
            self.cart.emit(Resource.loading())
            result = await self.mutations.decrease_quantity(line.document_id)

        if result.is_left:
            self.cart.emit(Resource.error(result.value))

    async def delete_cart_item(self, item: CartLineItem) -> None:
        resolved = self._resolve(item)
        if resolved.is_none():
            logger.warning("Cart item %s is not in the current cart, ignoring", item.product.id)
            return
        result = await self.mutations.delete_from_cart(resolved.value.document_id)
        if result.is_left:
            self.cart.emit(Resource.error(result.value))
