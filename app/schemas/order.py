# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.core.phone import normalize_phone

PaymentMethod = Literal["cod", "online"]
OrderStatus = Literal["pending", "confirmed", "packed", "shipped", "delivered", "canceled"]

MAX_LINE_QUANTITY = 99


class CustomerInfo(SQLModel):
    """
    Delivery contact and address captured at checkout.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    phone: str
    address: str
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    pincode: str

    @field_validator("name", "address", "city", "state")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, v: str) -> str:
        phone = normalize_phone(v)
        if phone is None:
            raise ValueError("phone must be a valid 10-digit mobile number")
        return phone

    @field_validator("pincode")
    @classmethod
    def valid_pincode(cls, v: str) -> str:
        v = v.strip()
        if len(v) != 6 or not v.isdigit() or v.startswith("0"):
            raise ValueError("pincode must be 6 digits")
        return v


class OrderLineCreate(SQLModel):
    """
    One cart line submitted at checkout. Price is not accepted here;
    the server re-prices from the catalog.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(ge=1, le=MAX_LINE_QUANTITY)
    color: str | None = None
    size: str | None = None


class OrderCreate(SQLModel):
    """
    Checkout payload built from the client-held cart.

    Backend derives:
      - user_id from token
      - unit prices from the catalog
      - subtotal / shipping / tax / total via compute_totals
      - status: 'confirmed' for COD, 'pending' otherwise

    Any client-side totals are rejected (extra="forbid").
    """

    model_config = ConfigDict(extra="forbid")

    customer: CustomerInfo
    items: list[OrderLineCreate] = Field(min_length=1)
    payment_method: PaymentMethod = "cod"


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    customer_name: str
    customer_phone: str
    address: str
    city: str
    state: str
    pincode: str
    payment_method: PaymentMethod
    status: OrderStatus
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    title: str
    sku: str
    color: str | None
    size: str | None
    image: str | None
    quantity: int
    unit_price: float
    line_total: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
