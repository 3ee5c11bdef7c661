# app/services/order_service.py
import uuid
from datetime import date, datetime, time, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.totals import PricingConfig, compute_totals
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import OrderTotals
from app.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderLineCreate,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.schemas.product import color_key

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "canceled"},
    "confirmed": {"packed", "canceled"},
    "packed": {"shipped"},
    "shipped": {"delivered"},
    "delivered": set(),
    "canceled": set(),
}


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Re-price submitted cart lines from the catalog
      - Validate lines against products (published, stock, options)
      - Compute totals with the shared compute_totals
      - Deduct stock
      - Enforce simple status transitions (admin)
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        pricing: PricingConfig,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.pricing = pricing

    # -------- Pricing --------

    def price_lines(
        self,
        session: Session,
        lines: list[OrderLineCreate],
    ) -> tuple[list[tuple[OrderLineCreate, Product]], OrderTotals]:
        """
        Resolve every line to its product and compute authoritative totals.

        Raises 400 with per-line reasons if any line is not orderable.
        """
        errors: list[dict[str, str]] = []
        priced: list[tuple[OrderLineCreate, Product]] = []
        requested: dict[uuid.UUID, int] = {}

        for line in lines:
            product = self.product_repo.get_by_id(session, line.product_id)

            if not product or product.deleted:
                errors.append({"product_id": str(line.product_id), "reason": "Product not found"})
                continue

            if not product.published:
                errors.append({"product_id": str(line.product_id), "reason": "Product is not available"})
                continue

            if line.quantity > self.pricing.max_line_quantity:
                errors.append(
                    {
                        "product_id": str(line.product_id),
                        "reason": f"Quantity exceeds {self.pricing.max_line_quantity}",
                    }
                )
                continue

            size_keys = {s.strip().lower() for s in product.sizes or []}
            if line.size and size_keys and line.size.strip().lower() not in size_keys:
                errors.append({"product_id": str(line.product_id), "reason": f"Size {line.size} not offered"})
                continue

            color_names = {color_key(c.get("name")) for c in product.colors or []}
            if line.color and color_names and color_key(line.color) not in color_names:
                errors.append({"product_id": str(line.product_id), "reason": f"Color {line.color} not offered"})
                continue

            requested[product.id] = requested.get(product.id, 0) + line.quantity
            priced.append((line, product))

        for product_id, quantity in requested.items():
            product = self.product_repo.get_by_id(session, product_id)
            if quantity > product.stock:
                errors.append(
                    {
                        "product_id": str(product_id),
                        "reason": f"Insufficient stock (have {product.stock}, requested {quantity})",
                    }
                )

        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Cart validation failed", "items": errors},
            )

        totals = compute_totals(
            [{"price": product.price, "quantity": line.quantity} for line, product in priced],
            self.pricing,
        )
        return priced, totals

    # -------- User-facing operations --------

    def create_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Persist an order from the submitted cart lines.

        Steps:
          1. Re-price lines and validate them (400 on any bad line).
          2. Create Order row with server-computed totals.
          3. Create OrderItem rows (catalog snapshot).
          4. Deduct product stock.
          5. Commit once and return full order.
        """
        priced, totals = self.price_lines(session, payload.items)

        order = Order(
            user_id=user_id,
            customer_name=payload.customer.name,
            customer_phone=payload.customer.phone,
            address=payload.customer.address,
            city=payload.customer.city,
            state=payload.customer.state,
            pincode=payload.customer.pincode,
            payment_method=payload.payment_method,
            status="confirmed" if payload.payment_method == "cod" else "pending",
            subtotal=totals.subtotal,
            shipping=totals.shipping,
            tax=totals.tax,
            discount=totals.discount,
            total=totals.total,
        )
        order = self.order_repo.create_order(session, order)

        order_items = [
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                title=product.title,
                sku=product.sku,
                color=line.color,
                size=line.size,
                image=product.hero_image_url,
                quantity=line.quantity,
                unit_price=product.price,
            )
            for line, product in priced
        ]
        order_items = self.order_repo.create_items(session, order_items)

        for line, product in priced:
            product.stock -= line.quantity
            session.add(product)

        session.commit()
        session.refresh(order)

        return self._build_order_with_items_dto(order, order_items)

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items).
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return orders  # type: ignore[return-value]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - 404 if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[OrderRead]:
        """
        List all orders, latest first, optionally within [date_from, date_to].
        """
        created_from = (
            datetime.combine(date_from, time.min, tzinfo=timezone.utc) if date_from else None
        )
        created_to = (
            datetime.combine(date_to, time.max, tzinfo=timezone.utc) if date_to else None
        )
        orders = self.order_repo.list_all(
            session, skip, limit, created_from=created_from, created_to=created_to
        )
        return orders  # type: ignore[return-value]

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get any order with items (admin only).
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderRead:
        """
        Admin-only status update with simple state machine:

          pending   -> confirmed, canceled
          confirmed -> packed, canceled
          packed    -> shipped
          shipped   -> delivered

        Any invalid transition raises 400.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

        current = order.status
        new = payload.status

        if current == new:
            return order  # type: ignore[return-value]

        if new not in ALLOWED_TRANSITIONS.get(current, set()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition: {current} -> {new}",
            )

        order.status = new
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        return order  # type: ignore[return-value]

    # -------- Helper DTO builder --------

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        item_dtos = [
            OrderItemRead(
                id=it.id,
                order_id=it.order_id,
                product_id=it.product_id,
                title=it.title,
                sku=it.sku,
                color=it.color,
                size=it.size,
                image=it.image,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=it.quantity * it.unit_price,
            )
            for it in items
        ]

        return OrderWithItemsRead(
            id=order.id,
            user_id=order.user_id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            address=order.address,
            city=order.city,
            state=order.state,
            pincode=order.pincode,
            payment_method=order.payment_method,  # Literal
            status=order.status,  # Literal
            subtotal=order.subtotal,
            shipping=order.shipping,
            tax=order.tax,
            discount=order.discount,
            total=order.total,
            created_at=order.created_at,
            items=item_dtos,
        )
