"""
Cart data access.

The order placement engine reads a user's cart lines and clears them inside
its transaction; add-to-cart uses ``add_item`` to create or grow a line.
"""

import uuid
from typing import Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from groceazy.core.logging import get_logger
from groceazy.database.models.cart import CartItem
from groceazy.database.models.product import Product
from groceazy.services.orders.errors import OrderValidationError, StockUnavailableError

logger = get_logger(__name__)


class CartRepository:
    """Repository for cart line reads and writes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_cart_lines(self, user_id: uuid.UUID) -> Sequence[CartItem]:
        """
        Get all cart lines for a user.

        Args:
            user_id: Cart owner

        Returns:
            Cart lines ordered by product identifier
        """
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.product_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        lines = result.scalars().all()

        logger.debug("Cart lines fetched", user_id=str(user_id), count=len(lines))
        return lines

    async def clear_cart(self, user_id: uuid.UUID) -> int:
        """
        Delete every cart line owned by a user.

        Returns:
            Number of lines removed
        """
        result = await self.session.execute(
            delete(CartItem)
            .where(CartItem.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        removed = result.rowcount or 0

        logger.debug("Cart cleared", user_id=str(user_id), removed=removed)
        return removed

    async def add_item(
        self,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int = 1,
    ) -> CartItem:
        """
        Add units of a product to the cart, growing an existing line.

        Stock is not reserved here; availability is enforced at placement.

        Raises:
            OrderValidationError: If quantity is not positive
            StockUnavailableError: If the product is missing, inactive or deleted
        """
        if quantity < 1:
            raise OrderValidationError("Quantity must be at least 1", quantity=quantity)

        product = await self.session.get(Product, product_id)
        if product is None or not product.is_purchasable:
            raise StockUnavailableError(
                product_id, product.name if product is not None else "Product"
            )

        result = await self.session.execute(
            update(CartItem)
            .where(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .values(quantity=CartItem.quantity + quantity)
            .returning(CartItem)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        line = result.scalar_one_or_none()

        if line is None:
            line = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
            self.session.add(line)
            await self.session.flush()

        logger.info(
            "Cart line updated",
            user_id=str(user_id),
            product_id=str(product_id),
            quantity=line.quantity,
        )
        return line
