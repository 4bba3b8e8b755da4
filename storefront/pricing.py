from decimal import Decimal
from functools import reduce
from typing import Iterable, Optional, Union

from .domain import CartLineItem

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number) -> Decimal:
    # float через str, чтобы не тащить двоичную погрешность
    return value if isinstance(value, Decimal) else Decimal(str(value))


def effective_price(
    base_price: Number, offer_percentage: Optional[Number] = None
) -> Decimal:
    """
    Цена после скидки: base * (1 - offer).
    Без скидки возвращает base без изменений. Округление здесь не делается.
    Значения offer вне [0, 1) не обрезаются - считаются как есть.
    """
    price = _to_decimal(base_price)
    if offer_percentage is None:
        return price
    return price * (Decimal(1) - _to_decimal(offer_percentage))


def line_total(item: CartLineItem) -> Decimal:
    return (
        effective_price(item.product.price, item.product.offer_percentage)
        * item.quantity
    )


def total_price(items: Iterable[CartLineItem]) -> Decimal:
    """Сумма корзины через reduce"""
    return reduce(lambda acc, item: acc + line_total(item), items, Decimal(0))


def format_price(amount: Decimal) -> str:
    """Округление до 2 знаков только для отображения"""
    return f"$ {amount.quantize(Decimal('0.01'))}"
