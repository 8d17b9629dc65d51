"""
Order database models.

This module defines Order, OrderItem and OrderStatusHistory. Order content
(items, prices, shipping address) is fixed at placement; only the status and
payment fields change afterwards, and every status change is recorded in the
history table.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groceazy.database.base import BaseModel, utcnow
from groceazy.services.orders.enums import OrderStatus, PaymentMethod, PaymentStatus

if TYPE_CHECKING:
    from groceazy.database.models.user import User


def _display_enum(enum_cls, name: str) -> SQLEnum:
    """Store enum members by their display value in a VARCHAR column."""
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Order(BaseModel):
    """
    Customer order.

    Attributes:
        id: Unique order identifier (UUID)
        order_number: Human readable order number
        user_id: Customer who placed the order
        shipping_address: Address snapshot taken at placement
        status: Current lifecycle status
        payment_status: Current payment status
        payment_method: COD or Online
        total_amount: Sum of item line totals
        placed_at: When the order was placed
        cancelled_at: When the order entered Cancelled, if it is cancelled
        delivered_at: When the order was delivered
        items: Order lines
        status_history: Audit trail, newest first (load explicitly)
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        comment="Human readable order number",
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Customer who placed the order",
    )

    shipping_address: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        comment="Shipping address snapshot",
    )

    status: Mapped[OrderStatus] = mapped_column(
        _display_enum(OrderStatus, "order_status"),
        nullable=False,
        default=OrderStatus.PENDING,
        comment="Current order status",
    )

    payment_status: Mapped[PaymentStatus] = mapped_column(
        _display_enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
        comment="Current payment status",
    )

    payment_method: Mapped[PaymentMethod] = mapped_column(
        _display_enum(PaymentMethod, "payment_method"),
        nullable=False,
        default=PaymentMethod.COD,
        comment="Payment method",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Sum of item line totals",
    )

    placed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the order was placed",
    )

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        comment="When the order was cancelled",
    )

    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        comment="When the order was delivered",
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="orders",
        lazy="raise",
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.product_id",
    )

    status_history: Mapped[list["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory",
        back_populates="order",
        lazy="raise",
        passive_deletes=True,
        order_by="OrderStatusHistory.created_at.desc()",
    )

    __table_args__ = (
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_payment_status", "payment_status"),
        CheckConstraint("total_amount >= 0", name="ck_orders_total_amount_non_negative"),
        {"comment": "Customer orders with status tracking"},
    )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class OrderItem(BaseModel):
    """
    Single order line.

    ``unit_price`` and ``product_name`` are copied from the product when the
    order is placed and never change afterwards.
    """

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent order",
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Ordered product",
    )

    product_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Product name at placement time",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Ordered units",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Product price at placement time",
    )

    line_total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="unit_price * quantity",
    )

    order: Mapped["Order"] = relationship(
        "Order",
        back_populates="items",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_order_items_unit_price_non_negative"),
        CheckConstraint("line_total >= 0", name="ck_order_items_line_total_non_negative"),
        {"comment": "Order lines with price snapshots"},
    )


class OrderStatusHistory(BaseModel):
    """
    Order status history model for audit trail.

    Attributes:
        id: Unique history record identifier (UUID)
        order_id: Foreign key to parent order
        from_status: Previous status
        to_status: New status
        changed_by: User who made the change
        change_reason: Reason for status change
    """

    __tablename__ = "order_status_history"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent order identifier",
    )

    from_status: Mapped[OrderStatus] = mapped_column(
        _display_enum(OrderStatus, "order_status"),
        nullable=False,
        comment="Previous status",
    )

    to_status: Mapped[OrderStatus] = mapped_column(
        _display_enum(OrderStatus, "order_status"),
        nullable=False,
        comment="New status",
    )

    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who made the change",
    )

    change_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Reason for status change",
    )

    order: Mapped["Order"] = relationship(
        "Order",
        back_populates="status_history",
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_order_status_history_order_created", "order_id", "created_at"),
        {"comment": "Audit trail of order status changes"},
    )
