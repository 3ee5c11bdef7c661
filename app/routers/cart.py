# app/routers/cart.py
from fastapi import APIRouter

from app.core.config import get_settings
from app.core.totals import (
    PricingConfig,
    compute_totals,
    count_items,
    free_shipping_remaining,
)
from app.schemas.cart import CartTotalsRead, CartTotalsRequest, PricingConfigRead

router = APIRouter(prefix="/cart", tags=["Cart"])

pricing = PricingConfig.from_settings(get_settings())


@router.post("/totals", response_model=CartTotalsRead)
def preview_totals(payload: CartTotalsRequest):
    """
    Totals preview for the client-held cart.

    Public endpoint. Lines are priced as sent, with quantities capped like
    checkout; checkout re-prices from the catalog, so this is display only.
    """
    totals = compute_totals(payload.items, pricing)
    return CartTotalsRead(
        **totals.model_dump(),
        item_count=count_items(payload.items, pricing),
        free_shipping_remaining=free_shipping_remaining(totals.subtotal, pricing),
    )


@router.get("/config", response_model=PricingConfigRead)
def pricing_config():
    """
    Shipping threshold, flat fee, tax rate and line quantity cap.
    """
    return PricingConfigRead(**pricing.model_dump())
