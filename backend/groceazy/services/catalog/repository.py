"""
Product data access for the stock ledger.

Every stock mutation here is a single UPDATE statement whose WHERE clause
carries the precondition, so the check and the write happen atomically in the
database and two concurrent buyers can never both pass a stale check.
"""

import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from groceazy.core.logging import get_logger
from groceazy.database.models.product import Product

logger = get_logger(__name__)


class ProductRepository:
    """Repository for product reads and atomic stock adjustments."""

    def __init__(self, session: AsyncSession):
        """
        Initialize product repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def get_by_id(
        self,
        product_id: uuid.UUID,
        refresh: bool = False,
    ) -> Optional[Product]:
        """
        Get product by ID.

        Args:
            product_id: Product identifier
            refresh: Overwrite any copy already held in the session

        Returns:
            Product if found, None otherwise
        """
        stmt = select(Product).where(Product.id == product_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def conditional_decrement(
        self,
        product_id: uuid.UUID,
        quantity: int,
    ) -> Optional[Product]:
        """
        Decrement stock only if the product is purchasable and has enough units.

        Args:
            product_id: Product identifier
            quantity: Units to take (must be positive)

        Returns:
            The product with its post-decrement stock, or None when the
            precondition did not hold and nothing was changed
        """
        if quantity < 1:
            raise ValueError("quantity must be positive")

        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.is_deleted.is_(False),
                Product.is_active.is_(True),
                Product.stock >= quantity,
            )
            .values(stock=Product.stock - quantity)
            .returning(Product)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self.session.execute(stmt)
        product = result.scalar_one_or_none()

        if product is None:
            logger.info(
                "Conditional stock decrement rejected",
                product_id=str(product_id),
                quantity=quantity,
            )
        else:
            logger.debug(
                "Stock decremented",
                product_id=str(product_id),
                quantity=quantity,
                stock=product.stock,
            )
        return product

    async def increment(
        self,
        product_id: uuid.UUID,
        quantity: int,
    ) -> Optional[Product]:
        """
        Return units to the ledger.

        Applies regardless of the product's active or deleted flags: units
        held by an order go back to the product they were taken from.

        Returns:
            The product with its new stock, or None if the row does not exist
        """
        if quantity < 1:
            raise ValueError("quantity must be positive")

        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .returning(Product)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self.session.execute(stmt)
        product = result.scalar_one_or_none()

        if product is not None:
            logger.debug(
                "Stock restored",
                product_id=str(product_id),
                quantity=quantity,
                stock=product.stock,
            )
        return product

