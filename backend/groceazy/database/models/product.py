"""
Product model holding the stock ledger.

The catalog service creates and edits products. The order core only ever
touches ``stock`` through single-statement conditional updates issued by
ProductRepository, so the column is never written from a value read earlier
in the same request.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from groceazy.core.config import get_settings
from groceazy.database.base import SoftDeleteModel


def _default_low_stock_threshold() -> int:
    return get_settings().low_stock_default_threshold


class Product(SoftDeleteModel):
    """
    Sellable grocery item.

    Attributes:
        id: Unique product identifier (UUID)
        name: Display name, also snapshotted onto order items
        description: Optional long description
        price: Authoritative unit price
        stock: Purchasable units on hand (never negative)
        low_stock_threshold: Stock level at or below which staff are alerted
        is_active: Whether the product is listed for sale
        is_deleted: Soft deletion flag (from SoftDeleteModel)
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Product display name",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Product description",
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Authoritative unit price",
    )

    stock: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Units available for purchase",
    )

    low_stock_threshold: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=_default_low_stock_threshold,
        comment="Stock level that triggers a low stock alert",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the product is listed for sale",
    )

    __table_args__ = (
        Index("ix_products_active_deleted", "is_active", "is_deleted"),
        Index("ix_products_stock", "stock"),
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint(
            "low_stock_threshold >= 0",
            name="ck_products_low_stock_threshold_non_negative",
        ),
        {"comment": "Grocery catalog with per-product stock ledger"},
    )

    @property
    def is_purchasable(self) -> bool:
        """Check if the product can currently be ordered."""
        return self.is_active and not self.is_deleted

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold
