import logging
from dataclasses import replace

import pydantic

from .constants import cart_path
from .docstore import DocumentStore, DocumentStoreError, Transaction
from .domain import CartLineItem, UserContext
from .ftypes import Either
from .transforms import line_item_from_document, line_item_to_document

logger = logging.getLogger(__name__)


class CartMutationService:
    """
    Атомарные операции над документами корзины пользователя.
    Одна попытка, без повторов: ошибка хранилища возвращается как Left(message).
    """

    def __init__(self, store: DocumentStore, user: UserContext):
        self.store = store
        self.user = user
        self.collection = cart_path(user.uid)

    async def add_to_cart(self, item: CartLineItem) -> Either[str, CartLineItem]:
        """Всегда создаёт новый документ; поиск дубликатов - забота вызывающего"""
        try:
            doc_id = await self.store.add(self.collection, line_item_to_document(item))
        except DocumentStoreError as e:
            logger.warning("Adding %s to cart failed: %s", item.product.id, e)
            return Either.left(str(e))
        logger.info("Added %s to cart of %s as %s", item.product.id, self.user.uid, doc_id)
        return Either.right(replace(item, document_id=doc_id))

    async def increase_quantity(self, document_id: str) -> Either[str, str]:
        return await self._change_quantity(document_id, +1)

    async def decrease_quantity(self, document_id: str) -> Either[str, str]:
        # защита от нуля живёт в CartStore; ниже нуля схема не пропустит
        return await self._change_quantity(document_id, -1)

    async def delete_from_cart(self, document_id: str) -> Either[str, str]:
        try:
            await self.store.delete(self.collection, document_id)
        except DocumentStoreError as e:
            logger.warning("Deleting cart document %s failed: %s", document_id, e)
            return Either.left(str(e))
        return Either.right(document_id)

    async def _change_quantity(self, document_id: str, delta: int) -> Either[str, str]:
        async def apply(transaction: Transaction) -> None:
            snapshot = await transaction.get(self.collection, document_id)
            if not snapshot.exists:
                logger.warning("Cart document %s is gone, nothing to update", document_id)
                return
            item = line_item_from_document(snapshot.data)
            transaction.set(
                self.collection,
                document_id,
                line_item_to_document(item.with_quantity(item.quantity + delta)),
            )

        try:
            await self.store.run_transaction(apply)
        except (DocumentStoreError, pydantic.ValidationError) as e:
            logger.warning("Quantity change on %s failed: %s", document_id, e)
            return Either.left(str(e))
        return Either.right(document_id)
