"""
Order read service.

Read paths for customers and staff. Writes go through OrderPlacementEngine and
OrderLifecycleManager; this service only loads orders, on short-lived
sessions of its own.
"""

import uuid
from typing import Any, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groceazy.core.logging import get_logger
from groceazy.database.models.order import Order, OrderStatusHistory
from groceazy.services.orders.errors import OrderNotFoundError, OrderValidationError
from groceazy.services.orders.lifecycle import INVALID_ORDER_ID_MESSAGE, ORDER_NOT_FOUND_MESSAGE
from groceazy.services.orders.repository import OrderRepository
from groceazy.services.orders.validators import parse_uuid

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


class OrderService:
    """Look up orders for their owners and for staff."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

        logger.info("OrderService initialized")

    async def get_order(
        self,
        user_id: Union[uuid.UUID, str],
        order_id: Union[uuid.UUID, str],
    ) -> Order:
        """
        Get one of the user's own orders.

        Raises:
            OrderValidationError: If the order id is malformed
            OrderNotFoundError: If no such order belongs to the user
        """
        owner_id = parse_uuid(user_id, "Invalid user ID", field="user_id")
        target_id = parse_uuid(order_id, INVALID_ORDER_ID_MESSAGE, field="order_id")

        async with self.session_factory() as session:
            order = await OrderRepository(session).get_user_order(owner_id, target_id)

        if order is None:
            raise OrderNotFoundError(ORDER_NOT_FOUND_MESSAGE, order_id=str(target_id))
        return order

    async def list_user_orders(self, user_id: Union[uuid.UUID, str]) -> Sequence[Order]:
        """Get the user's orders, newest first."""
        owner_id = parse_uuid(user_id, "Invalid user ID", field="user_id")

        async with self.session_factory() as session:
            orders = await OrderRepository(session).get_user_orders(owner_id)

        logger.debug("User orders fetched", user_id=str(owner_id), count=len(orders))
        return orders

    async def list_all_orders(self, page: int = 1, limit: int = 20) -> dict[str, Any]:
        """
        Get one page of every order for the staff console.

        Returns:
            Dict with ``orders`` and a ``pagination`` block of total, page and pages
        """
        if page < 1 or limit < 1 or limit > MAX_PAGE_SIZE:
            raise OrderValidationError(
                f"page must be at least 1 and limit between 1 and {MAX_PAGE_SIZE}",
                page=page,
                limit=limit,
            )

        async with self.session_factory() as session:
            orders, total, pages = await OrderRepository(session).get_all_orders(page, limit)

        return {
            "orders": orders,
            "pagination": {"total": total, "page": page, "pages": pages},
        }

    async def get_order_history(
        self,
        order_id: Union[uuid.UUID, str],
    ) -> Sequence[OrderStatusHistory]:
        """
        Get the audit trail of an order for staff, oldest change first.

        Raises:
            OrderValidationError: If the order id is malformed
            OrderNotFoundError: If the order does not exist
        """
        target_id = parse_uuid(order_id, INVALID_ORDER_ID_MESSAGE, field="order_id")

        async with self.session_factory() as session:
            orders = OrderRepository(session)
            if await orders.get_order_by_id(target_id) is None:
                raise OrderNotFoundError(ORDER_NOT_FOUND_MESSAGE, order_id=str(target_id))
            history = await orders.get_status_history(target_id)

        logger.debug("Order history fetched", order_id=str(target_id), count=len(history))
        return history
