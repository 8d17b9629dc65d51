"""Order status, payment status and payment method enums.

Values are the display strings stored in the database and returned by the API,
so clients see "Out for Delivery" rather than an internal identifier.
"""

from enum import Enum
from typing import Type, TypeVar

E = TypeVar("E", bound=Enum)


def _lookup(enum_cls: Type[E], value: str, label: str) -> E:
    """Resolve a value case-insensitively by display string or member name."""
    normalized = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == normalized or member.name.lower() == normalized:
            return member
    valid_values = ", ".join([m.value for m in enum_cls])
    raise ValueError(f"Invalid {label}: {value}. Valid values are: {valid_values}")


class OrderStatus(str, Enum):
    """Order lifecycle status.

    Forward path:
    - PENDING -> PROCESSING -> SHIPPED -> OUT_FOR_DELIVERY -> DELIVERED
    - OUT_FOR_DELIVERY is optional and can be switched off in settings
    - CANCELLED is reachable from any status but DELIVERED; managers can
      revive a cancelled order back into an active status
    - DELIVERED -> (terminal state)
    """

    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @classmethod
    def from_string(cls, value: str) -> "OrderStatus":
        """Convert string to OrderStatus enum.

        Args:
            value: Display string or member name, any case

        Returns:
            OrderStatus enum value

        Raises:
            ValueError: If value is not a valid status
        """
        return _lookup(cls, value, "order status")

    def is_terminal(self) -> bool:
        """Check if status permits no further change."""
        return self == OrderStatus.DELIVERED

    def is_active(self) -> bool:
        """Check if the order currently holds reserved stock."""
        return self != OrderStatus.CANCELLED

    def can_cancel(self) -> bool:
        """Check if the customer may still cancel from this status."""
        return self in {OrderStatus.PENDING, OrderStatus.PROCESSING}

    def notifies_customer(self) -> bool:
        """Statuses whose arrival is announced to the customer by email."""
        return self in {
            OrderStatus.SHIPPED,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
        }


class PaymentStatus(str, Enum):
    """Payment status of an order."""

    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"

    @classmethod
    def from_string(cls, value: str) -> "PaymentStatus":
        return _lookup(cls, value, "payment status")

    def is_successful(self) -> bool:
        return self == PaymentStatus.PAID


class PaymentMethod(str, Enum):
    """How the customer pays for an order."""

    COD = "COD"
    ONLINE = "Online"

    @classmethod
    def from_string(cls, value: str) -> "PaymentMethod":
        return _lookup(cls, value, "payment method")
