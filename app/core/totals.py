# app/core/totals.py
import math
from collections.abc import Iterable, Mapping
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import Settings
from app.schemas.cart import OrderTotals


class PricingConfig(BaseModel):
    """
    Constants behind cart / order totals.

    Defaults match the storefront: free shipping from 999, otherwise a flat
    60, tax 5% rounded to whole rupees.
    """

    model_config = ConfigDict(frozen=True)

    shipping_threshold: float = Field(default=999, ge=0)
    shipping_fee: float = Field(default=60, ge=0)
    tax_rate: float = Field(default=0.05, ge=0)
    max_line_quantity: int = Field(default=99, ge=1)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingConfig":
        return cls(
            shipping_threshold=settings.SHIPPING_THRESHOLD,
            shipping_fee=settings.SHIPPING_FEE,
            tax_rate=settings.TAX_RATE,
            max_line_quantity=settings.MAX_LINE_QUANTITY,
        )


def _field(item: Any, *names: str) -> Any:
    for name in names:
        if isinstance(item, Mapping):
            if name in item:
                return item[name]
        elif hasattr(item, name):
            return getattr(item, name)
    return None


def _as_amount(value: Any) -> float:
    """Non-negative finite number, or 0 for anything malformed."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _as_quantity(value: Any) -> int:
    return int(math.floor(_as_amount(value)))


def _line_quantity(item: Any, config: PricingConfig) -> int:
    """Units on a line, capped at max_line_quantity like checkout."""
    return min(_as_quantity(_field(item, "quantity", "qty")), config.max_line_quantity)


def round_currency(value: float) -> int:
    """Round half up to a whole currency unit (no paise in this shop)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(
    items: Iterable[Any] | None,
    config: PricingConfig | None = None,
    discount: float = 0,
) -> OrderTotals:
    """
    Compute subtotal, shipping, tax, discount and grand total.

    Items can be dicts (client-held cart lines) or objects exposing
    `price` / `quantity` (`qty` is accepted too). Missing or non-numeric
    values count as 0 instead of raising, since the input may come straight
    from an untrusted browser cart. Lines that are neither (None, strings,
    numbers) contribute nothing. Quantities are capped at
    `config.max_line_quantity`, the same limit checkout enforces.

    The same function prices the cart preview and the persisted order.
    """
    config = config or PricingConfig()

    subtotal = 0.0
    for item in items or []:
        price = _as_amount(_field(item, "price", "unit_price"))
        quantity = _line_quantity(item, config)
        subtotal += price * quantity

    shipping = 0.0 if subtotal >= config.shipping_threshold else config.shipping_fee
    tax = round_currency(subtotal * config.tax_rate)
    discount = _as_amount(discount)
    total = subtotal + shipping + tax - discount

    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        discount=discount,
        total=total,
    )


def count_items(items: Iterable[Any] | None, config: PricingConfig | None = None) -> int:
    """Total units across lines, with the same leniency as compute_totals."""
    config = config or PricingConfig()
    return sum(_line_quantity(item, config) for item in items or [])


def free_shipping_remaining(subtotal: float, config: PricingConfig | None = None) -> float:
    """How much more the customer must add to reach free shipping."""
    config = config or PricingConfig()
    return max(0.0, config.shipping_threshold - subtotal)
