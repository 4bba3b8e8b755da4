import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import pydantic

from .config import Settings, get_settings
from .constants import (
    BEST_DEALS_CATEGORY,
    BEST_PRODUCT_CATEGORY,
    CATEGORY_FIELD,
    MALFORMED_DOCUMENT,
    OFFER_PERCENTAGE_FIELD,
    PRICE_FIELD,
    PRODUCT_COLLECTION,
    SPECIAL_PRODUCT_CATEGORY,
)
from .docstore import DocumentStore, DocumentStoreError, Query
from .domain import Product
from .frp import StateFlow
from .ftypes import Resource
from .transforms import products_from_snapshots

logger = logging.getLogger(__name__)

Products = Tuple[Product, ...]


# ============ Пагинация ============


@dataclass(frozen=True)
class PagingInfo:
    page: int = 1
    previous: Products = ()
    is_paging_end: bool = False


def advance(info: PagingInfo, products: Products) -> PagingInfo:
    """
    Следующая страница. Конец пагинации - когда новая страница
    совпала с предыдущей целиком.
    """
    return PagingInfo(
        page=info.page + 1,
        previous=products,
        is_paging_end=products == info.previous,
    )


def category_query(category: str) -> Query:
    return Query(PRODUCT_COLLECTION).where(CATEGORY_FIELD, "==", category)


async def _fetch(
    store: DocumentStore, flow: StateFlow[Resource[Products]], query: Query
) -> Resource[Products]:
    flow.emit(Resource.loading())
    try:
        products = products_from_snapshots(await store.query(query))
    except DocumentStoreError as e:
        logger.warning("Catalog query on %s failed: %s", query.collection, e)
        resource = Resource.error(str(e))
    except pydantic.ValidationError as e:
        logger.warning("Malformed product in %s: %s", query.collection, e)
        resource = Resource.error(MALFORMED_DOCUMENT)
    else:
        resource = Resource.success(products)
    flow.emit(resource)
    return resource


class PagedFeed:
    """Список товаров с подгрузкой: limit = page * page_size"""

    def __init__(
        self,
        store: DocumentStore,
        query_for_limit: Callable[[int], Query],
        page_size: int,
    ):
        self.store = store
        self.query_for_limit = query_for_limit
        self.page_size = page_size
        self.products: StateFlow[Resource[Products]] = StateFlow(Resource.unspecified())
        self.paging = PagingInfo()

    @property
    def is_paging_end(self) -> bool:
        return self.paging.is_paging_end

    async def fetch_next(self) -> Resource[Products]:
        if self.paging.is_paging_end:
            return self.products.value
        query = self.query_for_limit(self.paging.page * self.page_size)
        resource = await _fetch(self.store, self.products, query)
        if resource.is_success:
            self.paging = advance(self.paging, resource.data)
        return resource

    def reset(self) -> None:
        self.paging = PagingInfo()


class CatalogService:
    """Главная витрина: спецпредложения, лучшие сделки, лучшие товары"""

    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None):
        self.store = store
        settings = settings or get_settings()
        self.special_products: StateFlow[Resource[Products]] = StateFlow(Resource.unspecified())
        self.best_deals: StateFlow[Resource[Products]] = StateFlow(Resource.unspecified())
        self._best = PagedFeed(
            store,
            lambda limit: category_query(BEST_PRODUCT_CATEGORY)
            .order_by(PRICE_FIELD)
            .limit(limit),
            settings.page_size,
        )

    @property
    def best_products(self) -> StateFlow[Resource[Products]]:
        return self._best.products

    @property
    def paging(self) -> PagingInfo:
        return self._best.paging

    async def fetch_special_products(self) -> Resource[Products]:
        return await _fetch(
            self.store, self.special_products, category_query(SPECIAL_PRODUCT_CATEGORY)
        )

    async def fetch_best_deals(self) -> Resource[Products]:
        return await _fetch(self.store, self.best_deals, category_query(BEST_DEALS_CATEGORY))

    async def fetch_best_products(self) -> Resource[Products]:
        return await self._best.fetch_next()

    def reset_paging(self) -> None:
        self._best.reset()


class CategoryCatalog:
    """Вкладка категории: товары со скидкой и постраничные товары без скидки"""

    def __init__(
        self, store: DocumentStore, category: str, settings: Optional[Settings] = None
    ):
        self.store = store
        self.category = category
        settings = settings or get_settings()
        self.offer_products: StateFlow[Resource[Products]] = StateFlow(Resource.unspecified())
        self._best = PagedFeed(
            store,
            lambda limit: category_query(category)
            .where(OFFER_PERCENTAGE_FIELD, "==", None)
            .limit(limit),
            settings.page_size,
        )

    @property
    def best_products(self) -> StateFlow[Resource[Products]]:
        return self._best.products

    @property
    def paging(self) -> PagingInfo:
        return self._best.paging

    async def fetch_offer_products(self) -> Resource[Products]:
        query = category_query(self.category).where(OFFER_PERCENTAGE_FIELD, "!=", None)
        return await _fetch(self.store, self.offer_products, query)

    async def fetch_best_products(self) -> Resource[Products]:
        return await self._best.fetch_next()

    def reset_paging(self) -> None:
        self._best.reset()
