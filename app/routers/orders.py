# app/routers/orders.py
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import require_user, require_admin
from app.core.config import get_settings
from app.core.totals import PricingConfig
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderCreate,
    OrderRead,
    OrderWithItemsRead,
    OrderStatusUpdate,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
service = OrderService(
    order_repo,
    product_repo,
    PricingConfig.from_settings(get_settings()),
)


# -------- User-facing endpoints --------


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Place an order from the client-held cart.

    Prices and totals are computed server-side from the catalog.

    Auth:
      - Only role='user' (customer) can checkout.
    """
    return service.create_order(session, current_user.id, payload)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items).
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
):
    """
    List all orders (admin only), optionally filtered by creation date
    (`from` / `to`, inclusive, YYYY-MM-DD).
    """
    return service.list_all_orders(
        session, skip, limit, date_from=date_from, date_to=date_to
    )


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any order with items (admin only).
    """
    return service.get_order_admin(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only) with simple state machine.

      pending   -> confirmed, canceled

      confirmed -> packed, canceled

      packed    -> shipped

      shipped   -> delivered

    """
    return service.update_status(session, order_id, payload)
