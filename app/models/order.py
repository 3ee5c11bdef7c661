# app/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Money fields are computed server-side from the submitted lines at
    checkout; client-sent totals are never stored.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # Delivery contact / address
    customer_name: str = Field(max_length=100)
    customer_phone: str = Field(
        max_length=15,
        description="Canonical 10-digit contact number",
    )
    address: str
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    pincode: str = Field(max_length=6)

    # cod | online
    payment_method: str = Field(default="cod")

    # pending | confirmed | packed | shipped | delivered | canceled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    subtotal: float
    shipping: float
    tax: float
    discount: float = Field(default=0)
    total: float = Field(
        description="subtotal + shipping + tax - discount",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order, snapshotting the product at checkout.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    title: str
    sku: str = Field(default="")
    color: str | None = None
    size: str | None = None
    image: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        description="Catalog price at time of order",
    )
