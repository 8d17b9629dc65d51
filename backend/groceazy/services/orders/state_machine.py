"""Order status transition rules.

Transition planning is pure: given the current and requested status it
decides whether the change is allowed and which stock movement has to happen
with it, so the lifecycle manager only has to carry the plan out inside a
transaction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from groceazy.services.orders.enums import OrderStatus
from groceazy.services.orders.errors import OrderStateError, OrderValidationError

CANCEL_NOT_ALLOWED_MESSAGE = "Order cannot be cancelled in its current state"
DELIVERED_IMMUTABLE_MESSAGE = "Delivered order status cannot be changed"
INVALID_STATUS_MESSAGE = "Invalid order status"


class StockMovement(str, Enum):
    """Stock ledger effect of a status transition."""

    NONE = "none"
    RESTORE = "restore"
    RESERVE = "reserve"


@dataclass(frozen=True)
class TransitionPlan:
    """Outcome of planning a status change."""

    current: OrderStatus
    target: OrderStatus
    stock_movement: StockMovement

    @property
    def notifies_customer(self) -> bool:
        return self.current != self.target and self.target.notifies_customer()

    @property
    def is_cancellation(self) -> bool:
        return self.stock_movement == StockMovement.RESTORE


def allowed_statuses(enable_out_for_delivery: bool = True) -> list[OrderStatus]:
    """Statuses a manager may set, in lifecycle order."""
    return [
        status
        for status in OrderStatus
        if enable_out_for_delivery or status != OrderStatus.OUT_FOR_DELIVERY
    ]


def parse_status(value: Any, enable_out_for_delivery: bool = True) -> OrderStatus:
    """
    Convert user input into an allowed OrderStatus.

    Raises:
        OrderValidationError: If the value is not an allowed status
    """
    try:
        status = value if isinstance(value, OrderStatus) else OrderStatus.from_string(str(value))
    except ValueError as e:
        raise OrderValidationError(INVALID_STATUS_MESSAGE, status=str(value)) from e

    if status not in allowed_statuses(enable_out_for_delivery):
        raise OrderValidationError(INVALID_STATUS_MESSAGE, status=status.value)
    return status


def plan_transition(current: OrderStatus, target: OrderStatus) -> TransitionPlan:
    """
    Plan a manager-driven status change.

    Moving into Cancelled returns the order's units to stock, moving out of
    Cancelled takes them again, and every other change leaves stock alone.

    Raises:
        OrderStateError: If the order is already Delivered
    """
    if current.is_terminal():
        raise OrderStateError(
            DELIVERED_IMMUTABLE_MESSAGE,
            current_status=current.value,
            target_status=target.value,
        )

    movement = StockMovement.NONE
    if target == OrderStatus.CANCELLED and current != OrderStatus.CANCELLED:
        movement = StockMovement.RESTORE
    elif current == OrderStatus.CANCELLED and target != OrderStatus.CANCELLED:
        movement = StockMovement.RESERVE

    return TransitionPlan(current=current, target=target, stock_movement=movement)


def plan_cancellation(current: OrderStatus) -> TransitionPlan:
    """
    Plan a customer cancellation.

    Raises:
        OrderStateError: Unless the order is Pending or Processing
    """
    if not current.can_cancel():
        raise OrderStateError(CANCEL_NOT_ALLOWED_MESSAGE, current_status=current.value)
    return TransitionPlan(
        current=current,
        target=OrderStatus.CANCELLED,
        stock_movement=StockMovement.RESTORE,
    )
