# app/schemas/cart.py
from typing import Any

from sqlmodel import SQLModel


class OrderTotals(SQLModel):
    """
    Derived money fields for a cart or order.

    total = subtotal + shipping + tax - discount
    """

    subtotal: float
    shipping: float
    tax: float
    discount: float = 0
    total: float


class CartTotalsRequest(SQLModel):
    """
    Client-held cart lines sent for a totals preview.

    Lines are free-form, in whatever shape the browser cart stored
    (price/quantity/qty/title/image/...). Entries that are not objects
    (null, strings, numbers) are accepted and priced as empty lines.
    """

    items: list[Any] = []


class CartTotalsRead(OrderTotals):
    """
    Totals plus what the free-shipping bar needs.
    """

    item_count: int
    free_shipping_remaining: float


class PricingConfigRead(SQLModel):
    """
    Public pricing constants so the client preview matches the server.
    """

    shipping_threshold: float
    shipping_fee: float
    tax_rate: float
    max_line_quantity: int
