from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class UserContext:
    """Аутентифицированный пользователь, передаётся явно в каждый сервис"""

    uid: str


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: str
    price: Decimal
    images: Tuple[str, ...] = ()
    offer_percentage: Optional[Decimal] = None  # доля в [0, 1)
    description: Optional[str] = None
    colors: Optional[Tuple[int, ...]] = None
    sizes: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class CartLineItem:
    """
    Позиция корзины. Продукт хранится целиком (денормализованная копия).
    document_id - идентификатор документа в хранилище, не участвует в сравнении.
    """

    product: Product
    quantity: int = 1
    selected_color: Optional[int] = None
    selected_size: Optional[str] = None
    document_id: Optional[str] = field(default=None, compare=False)

    def same_variant(self, other: "CartLineItem") -> bool:
        """Тот же товар с тем же цветом/размером; количество не важно"""
        return (
            self.product == other.product
            and self.selected_color == other.selected_color
            and self.selected_size == other.selected_size
        )

    def with_quantity(self, quantity: int) -> "CartLineItem":
        return replace(self, quantity=quantity)


@dataclass(frozen=True)
class Address:
    address_title: str
    full_name: str
    street: str
    phone: str
    city: str
    state: str


class OrderStatus(Enum):
    ORDERED = "Ordered"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELED = "Canceled"
    RETURNED = "Returned"


@dataclass(frozen=True)
class Order:
    order_status: OrderStatus
    total_price: Decimal
    products: Tuple[CartLineItem, ...]
    address: Address
    date: str
    order_id: int


@dataclass(frozen=True)
class UserProfile:
    first_name: str
    last_name: str
    email: str
    image_path: str = ""


class QuantityChange(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
