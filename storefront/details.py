import logging
from typing import Optional

import pydantic

from .constants import CART_PRODUCT_ID_FIELD, MALFORMED_DOCUMENT, cart_path
from .docstore import DocumentStore, DocumentStoreError, Query
from .domain import CartLineItem, Product, UserContext
from .frp import StateFlow
from .ftypes import Maybe, Resource
from .mutations import CartMutationService
from .transforms import line_item_from_snapshot

logger = logging.getLogger(__name__)


def missing_selection(
    product: Product, color: Optional[int], size: Optional[str]
) -> Maybe[str]:
    """
    Проверка, которую делает UI перед добавлением в корзину:
    если у товара есть цвета/размеры, они должны быть выбраны.
    """
    if product.colors and color is None:
        return Maybe.some("Please select a color")
    if product.sizes and size is None:
        return Maybe.some("Please select a size")
    return Maybe.nothing()


class DetailsFlow:
    """Мост товар -> корзина: новая позиция или +1 к существующей"""

    def __init__(
        self,
        store: DocumentStore,
        user: UserContext,
        mutations: Optional[CartMutationService] = None,
    ):
        self.store = store
        self.user = user
        self.mutations = mutations or CartMutationService(store, user)
        self.add_to_cart: StateFlow[Resource[CartLineItem]] = StateFlow(
            Resource.unspecified()
        )

    async def add_update_product_in_cart(self, item: CartLineItem) -> Resource[CartLineItem]:
        self.add_to_cart.emit(Resource.loading())
        query = Query(cart_path(self.user.uid)).where(
            CART_PRODUCT_ID_FIELD, "==", item.product.id
        )
        try:
            lines = tuple(map(line_item_from_snapshot, await self.store.query(query)))
        except DocumentStoreError as e:
            return self._publish(Resource.error(str(e)))
        except pydantic.ValidationError as e:
            logger.warning("Malformed cart document for %s: %s", item.product.id, e)
            return self._publish(Resource.error(MALFORMED_DOCUMENT))

        existing = next((line for line in lines if line.same_variant(item)), None)
        if existing is None:
            # нет товара или другой цвет/размер - отдельная позиция
            result = await self.mutations.add_to_cart(item)
        else:
            logger.debug("Merging %s into cart line %s", item.product.id, existing.document_id)
            result = (await self.mutations.increase_quantity(existing.document_id)).map(
                lambda _: item
            )

        if result.is_left:
            return self._publish(Resource.error(result.value))
        return self._publish(Resource.success(result.value))

    def _publish(self, resource: Resource[CartLineItem]) -> Resource[CartLineItem]:
        self.add_to_cart.emit(resource)
        return resource
