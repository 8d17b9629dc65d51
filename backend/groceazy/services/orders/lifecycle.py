"""
Order lifecycle manager.

Drives orders through their statuses while keeping the stock ledger in step:
an order that is not Cancelled holds its units, a Cancelled order has given
them back. Each change runs in one transaction with the order row locked, so
the stock movement and the status write commit or roll back together.
"""

import uuid
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger
from groceazy.database.models.order import Order
from groceazy.database.transaction import TransactionManager
from groceazy.services.catalog.repository import ProductRepository
from groceazy.services.notifications.order_notifier import OrderEmail, OrderNotifier
from groceazy.services.orders.enums import OrderStatus, PaymentStatus
from groceazy.services.orders.errors import (
    OrderNotFoundError,
    OrderStateError,
    OrderValidationError,
    StockUnavailableError,
)
from groceazy.services.orders.placement import reserve_stock
from groceazy.services.orders.repository import OrderRepository
from groceazy.services.orders.state_machine import (
    StockMovement,
    TransitionPlan,
    parse_status,
    plan_cancellation,
    plan_transition,
)
from groceazy.services.orders.validators import parse_uuid

logger = get_logger(__name__)

INVALID_ORDER_ID_MESSAGE = "Invalid Order ID"
ORDER_NOT_FOUND_MESSAGE = "Order not found"


async def restore_stock(products: ProductRepository, order: Order) -> None:
    """Give every item's units back to its product."""
    for item in sorted(order.items, key=lambda order_item: order_item.product_id):
        product = await products.increment(item.product_id, item.quantity)
        if product is None:
            raise StockUnavailableError(item.product_id, item.product_name)


async def rereserve_stock(products: ProductRepository, order: Order) -> None:
    """Take every item's units again, failing on the first short product."""
    for item in sorted(order.items, key=lambda order_item: order_item.product_id):
        await reserve_stock(products, item.product_id, item.quantity)


class OrderLifecycleManager:
    """
    Apply cancellations, status changes and payment updates to orders.

    Attributes:
        transactions: Runs each change as one retryable transaction
        notifier: Receives customer emails after commit
        enable_out_for_delivery: Whether "Out for Delivery" may be set
    """

    def __init__(
        self,
        transactions: TransactionManager,
        notifier: OrderNotifier,
        enable_out_for_delivery: Optional[bool] = None,
    ):
        self.transactions = transactions
        self.notifier = notifier
        self.enable_out_for_delivery = (
            get_settings().enable_out_for_delivery_status
            if enable_out_for_delivery is None
            else enable_out_for_delivery
        )

        logger.info(
            "OrderLifecycleManager initialized",
            enable_out_for_delivery=self.enable_out_for_delivery,
        )

    async def cancel_order(
        self,
        user_id: Union[uuid.UUID, str],
        order_id: Union[uuid.UUID, str],
    ) -> Order:
        """
        Cancel a customer's own order and return its units to stock.

        Args:
            user_id: Customer requesting the cancellation
            order_id: Order to cancel

        Returns:
            The cancelled order

        Raises:
            OrderValidationError: If an identifier is malformed
            OrderNotFoundError: If the order does not exist or belongs to someone else
            OrderStateError: If the order is not Pending or Processing
        """
        owner_id = parse_uuid(user_id, "Invalid user ID", field="user_id")
        target_id = parse_uuid(order_id, INVALID_ORDER_ID_MESSAGE, field="order_id")

        async def operation(session: AsyncSession) -> tuple[Order, TransitionPlan]:
            orders = OrderRepository(session)
            order = await orders.get_user_order(owner_id, target_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(ORDER_NOT_FOUND_MESSAGE, order_id=str(target_id))

            plan = plan_cancellation(order.status)
            await self._apply(session, order, plan, changed_by=owner_id, reason="Cancelled by customer")
            return order, plan

        order, plan = await self.transactions.run(operation, name="cancel_order")

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            user_id=str(owner_id),
            previous_status=plan.current.value,
        )
        self._notify(order, plan)
        return order

    async def update_order_status(
        self,
        order_id: Union[uuid.UUID, str],
        new_status: Union[OrderStatus, str],
        changed_by: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> Order:
        """
        Set an order's status on behalf of staff.

        Moving into Cancelled restores stock, moving out of Cancelled
        reserves it again, other moves leave stock untouched.

        Args:
            order_id: Order to change
            new_status: Target status
            changed_by: Staff member making the change
            reason: Optional note stored in the status history

        Returns:
            The updated order

        Raises:
            OrderValidationError: If the id or the status is invalid
            OrderNotFoundError: If the order does not exist
            OrderStateError: If the order is already Delivered
            StockUnavailableError: Reviving the order hit a withdrawn product
            InsufficientStockError: Reviving the order hit a short product
        """
        target_id = parse_uuid(order_id, INVALID_ORDER_ID_MESSAGE, field="order_id")
        target_status = parse_status(new_status, self.enable_out_for_delivery)

        async def operation(session: AsyncSession) -> tuple[Order, TransitionPlan]:
            order = await OrderRepository(session).get_order_by_id(target_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(ORDER_NOT_FOUND_MESSAGE, order_id=str(target_id))

            plan = plan_transition(order.status, target_status)
            await self._apply(session, order, plan, changed_by=changed_by, reason=reason)
            return order, plan

        order, plan = await self.transactions.run(operation, name="update_order_status")

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            previous_status=plan.current.value,
            new_status=plan.target.value,
            stock_movement=plan.stock_movement.value,
            changed_by=str(changed_by) if changed_by else None,
        )
        self._notify(order, plan)
        return order

    async def record_payment(
        self,
        order_id: Union[uuid.UUID, str],
        payment_status: Union[PaymentStatus, str],
        changed_by: Optional[uuid.UUID] = None,
    ) -> Order:
        """
        Record the payment outcome of an order.

        A Paid result on a Pending order also moves it to Processing.

        Raises:
            OrderValidationError: If the id or the payment status is invalid
            OrderNotFoundError: If the order does not exist
            OrderStateError: If the order is Cancelled
        """
        target_id = parse_uuid(order_id, INVALID_ORDER_ID_MESSAGE, field="order_id")
        try:
            new_payment_status = (
                payment_status
                if isinstance(payment_status, PaymentStatus)
                else PaymentStatus.from_string(str(payment_status))
            )
        except ValueError as e:
            raise OrderValidationError(
                "Invalid payment status", payment_status=str(payment_status)
            ) from e

        async def operation(session: AsyncSession) -> Order:
            orders = OrderRepository(session)
            order = await orders.get_order_by_id(target_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(ORDER_NOT_FOUND_MESSAGE, order_id=str(target_id))
            if order.status == OrderStatus.CANCELLED:
                raise OrderStateError(
                    "Payment cannot be recorded for a cancelled order",
                    order_id=str(target_id),
                )

            await orders.set_payment_status(order, new_payment_status)
            if new_payment_status.is_successful() and order.status == OrderStatus.PENDING:
                await orders.set_status(
                    order,
                    OrderStatus.PROCESSING,
                    changed_by=changed_by,
                    reason="Payment received",
                )
            return order

        order = await self.transactions.run(operation, name="record_payment")

        logger.info(
            "Order payment recorded",
            order_id=str(order.id),
            payment_status=order.payment_status.value,
            status=order.status.value,
        )
        return order

    async def _apply(
        self,
        session: AsyncSession,
        order: Order,
        plan: TransitionPlan,
        changed_by: Optional[uuid.UUID],
        reason: Optional[str],
    ) -> None:
        products = ProductRepository(session)
        if plan.stock_movement == StockMovement.RESTORE:
            await restore_stock(products, order)
        elif plan.stock_movement == StockMovement.RESERVE:
            await rereserve_stock(products, order)

        await OrderRepository(session).set_status(
            order, plan.target, changed_by=changed_by, reason=reason
        )

    def _notify(self, order: Order, plan: TransitionPlan) -> None:
        email = OrderEmail(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status.value,
            total_amount=order.total_amount,
        )
        if plan.is_cancellation:
            self.notifier.notify_cancelled(email)
        elif plan.notifies_customer:
            self.notifier.notify_status_change(email)
