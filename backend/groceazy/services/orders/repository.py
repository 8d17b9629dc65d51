"""
Order data access repository.

This module implements the OrderRepository class providing async methods for
creating orders with items, loading orders (optionally locked for update),
listing orders, and recording status and payment changes together with their
audit history. Transaction boundaries belong to the caller.
"""

import math
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groceazy.core.logging import get_logger
from groceazy.database.base import utcnow
from groceazy.database.models.order import Order, OrderItem, OrderStatusHistory
from groceazy.services.orders.enums import OrderStatus, PaymentMethod, PaymentStatus

logger = get_logger(__name__)


class OrderRepository:
    """
    Repository for order data access operations.

    Provides async methods for creating and reading orders and for applying
    status and payment changes with history tracking.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize order repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def create_order_with_items(
        self,
        user_id: uuid.UUID,
        order_number: str,
        shipping_address: dict[str, Any],
        total_amount: Decimal,
        items: Sequence[dict[str, Any]],
        payment_method: PaymentMethod = PaymentMethod.COD,
        placed_at: Optional[datetime] = None,
    ) -> Order:
        """
        Create order with items and its initial history row.

        Args:
            user_id: User placing the order
            order_number: Human-readable order number
            shipping_address: Address snapshot
            total_amount: Sum of item line totals
            items: Dicts with product_id, product_name, quantity, unit_price, line_total
            payment_method: COD or Online
            placed_at: Placement time, now when omitted

        Returns:
            Created order with items
        """
        order = Order(
            user_id=user_id,
            order_number=order_number,
            shipping_address=dict(shipping_address),
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
            total_amount=total_amount,
            placed_at=placed_at or utcnow(),
            items=[
                OrderItem(
                    product_id=item["product_id"],
                    product_name=item["product_name"],
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    line_total=item["line_total"],
                )
                for item in items
            ],
        )
        self.session.add(order)
        await self.session.flush()

        await self.record_status_change(
            order.id,
            OrderStatus.PENDING,
            OrderStatus.PENDING,
            changed_by=user_id,
            reason="Order placed",
        )

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order_number,
            item_count=len(order.items),
            total_amount=str(total_amount),
        )
        return order

    async def get_order_by_id(
        self,
        order_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[Order]:
        """
        Get order by ID with its items.

        Args:
            order_id: Order identifier
            for_update: Lock the order row until the transaction ends

        Returns:
            Order if found, None otherwise
        """
        stmt = select(Order).where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_order(
        self,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[Order]:
        """Get an order only if it belongs to the given user."""
        order = await self.get_order_by_id(order_id, for_update=for_update)
        if order is None or order.user_id != user_id:
            return None
        return order

    async def get_user_orders(self, user_id: uuid.UUID) -> Sequence[Order]:
        """
        Get all orders of a user, newest first.

        Args:
            user_id: User identifier

        Returns:
            Orders with items loaded
        """
        result = await self.session.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.placed_at.desc(), Order.id)
        )
        return result.scalars().all()

    async def get_all_orders(
        self,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[Sequence[Order], int, int]:
        """
        Get one page of all orders, newest first.

        Args:
            page: 1-based page number
            limit: Page size

        Returns:
            Tuple of (orders, total_count, page_count)
        """
        page = max(page, 1)
        limit = max(limit, 1)

        total = (
            await self.session.execute(select(func.count()).select_from(Order))
        ).scalar_one()

        result = await self.session.execute(
            select(Order)
            .order_by(Order.placed_at.desc(), Order.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        orders = result.scalars().all()

        return orders, total, math.ceil(total / limit) if total else 0

    async def set_status(
        self,
        order: Order,
        new_status: OrderStatus,
        changed_by: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> Order:
        """
        Apply a status change to a loaded order and record it.

        Stamps delivered_at and cancelled_at on entering those states and
        clears cancelled_at when an order leaves Cancelled.
        """
        old_status = order.status
        now = utcnow()

        order.status = new_status
        if new_status == OrderStatus.DELIVERED:
            order.delivered_at = now
        if new_status == OrderStatus.CANCELLED:
            order.cancelled_at = now
        elif old_status == OrderStatus.CANCELLED:
            order.cancelled_at = None

        await self.record_status_change(
            order.id, old_status, new_status, changed_by=changed_by, reason=reason
        )
        await self.session.flush()

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            old_status=old_status.value,
            new_status=new_status.value,
        )
        return order

    async def set_payment_status(
        self,
        order: Order,
        payment_status: PaymentStatus,
    ) -> Order:
        old_status = order.payment_status
        order.payment_status = payment_status
        await self.session.flush()

        logger.info(
            "Order payment status updated",
            order_id=str(order.id),
            old_payment_status=old_status.value,
            new_payment_status=payment_status.value,
        )
        return order

    async def record_status_change(
        self,
        order_id: uuid.UUID,
        from_status: OrderStatus,
        to_status: OrderStatus,
        changed_by: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Append a row to the order's status history."""
        entry = OrderStatusHistory(
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            change_reason=reason,
        )
        self.session.add(entry)
        return entry

    async def get_status_history(self, order_id: uuid.UUID) -> Sequence[OrderStatusHistory]:
        """Get the history of an order in the order changes happened."""
        result = await self.session.execute(
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at.asc())
        )
        return result.scalars().all()
