"""
Shopping cart database model.

A cart is simply the set of CartItem rows owned by a user, one row per
product. Rows are created and incremented by add-to-cart and removed in bulk
when an order is placed from them.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groceazy.database.base import BaseModel

if TYPE_CHECKING:
    from groceazy.database.models.product import Product
    from groceazy.database.models.user import User


class CartItem(BaseModel):
    """
    Per-user per-product quantity intent.

    Attributes:
        id: Unique cart item identifier (UUID)
        user_id: Owning user
        product_id: Product the user intends to buy
        quantity: Requested units (at least 1)
    """

    __tablename__ = "cart_items"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning user",
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Product in the cart",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Requested quantity",
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="cart_items",
        lazy="raise",
    )

    product: Mapped["Product"] = relationship(
        "Product",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        {"comment": "Cart lines per user and product"},
    )
