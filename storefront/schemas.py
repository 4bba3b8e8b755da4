"""
Document schemas for the storefront collections.

Each pydantic model describes one kind of stored document:
  ProductDocument      -> "Products"
  CartProductDocument  -> "user/{uid}/cart"
  AddressDocument      -> "user/{uid}/address"
  OrderDocument        -> "user/{uid}/orders" and "orders"
  UserDocument         -> "user/{uid}"
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ProductDocument(BaseModel):
    id: str
    name: str
    category: str
    price: Decimal = Field(..., ge=0)
    offer_percentage: Optional[Decimal] = Field(
        None, description="Discount as a fraction, 0.25 means 25% off"
    )
    description: Optional[str] = None
    colors: Optional[List[int]] = Field(None, description="ARGB colour values")
    sizes: Optional[List[str]] = None
    images: List[str] = Field(default_factory=list)


class CartProductDocument(BaseModel):
    product: ProductDocument
    # the decrement transaction is allowed to write 0
    quantity: int = Field(1, ge=0)
    selected_color: Optional[int] = None
    selected_size: Optional[str] = None


class AddressDocument(BaseModel):
    address_title: str
    full_name: str
    street: str
    phone: str
    city: str
    state: str


class OrderDocument(BaseModel):
    order_status: str = "Ordered"
    total_price: Decimal
    products: List[CartProductDocument]
    address: AddressDocument
    date: str
    order_id: int


class UserDocument(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    image_path: str = ""
