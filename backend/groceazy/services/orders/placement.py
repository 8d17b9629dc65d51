"""
Order placement engine.

Turns a user's cart into an order in one transaction: every cart line takes
its units from the stock ledger through a conditional decrement, the order is
written with prices read from the catalog, and the cart is emptied. If any
line cannot be reserved the whole transaction is rolled back, so no partial
reservation and no half-cleared cart survive a failed placement.
"""

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Union

from sqlalchemy.ext.asyncio import AsyncSession

from groceazy.core.logging import get_logger, log_performance
from groceazy.database.models.order import Order
from groceazy.database.models.product import Product
from groceazy.database.transaction import TransactionManager
from groceazy.services.cart.repository import CartRepository
from groceazy.services.catalog.repository import ProductRepository
from groceazy.services.notifications.order_notifier import (
    LowStockAlert,
    OrderEmail,
    OrderNotifier,
)
from groceazy.services.orders.enums import PaymentMethod
from groceazy.services.orders.errors import (
    InsufficientStockError,
    OrderValidationError,
    StockUnavailableError,
)
from groceazy.services.orders.repository import OrderRepository
from groceazy.services.orders.validators import parse_uuid, validate_shipping_address
from groceazy.services.users.repository import UserRepository

logger = get_logger(__name__)

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_order_number() -> str:
    """
    Generate unique order number.

    Returns:
        Order number string such as ``ORD-20240101120000-1A2B3C``
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    random_suffix = uuid.uuid4().hex[:6].upper()
    return f"ORD-{timestamp}-{random_suffix}"


async def reserve_stock(
    products: ProductRepository,
    product_id: uuid.UUID,
    quantity: int,
) -> Product:
    """
    Take units from the ledger or explain why they cannot be taken.

    Runs the conditional decrement; when it matches no row the product is
    re-read to tell a withdrawn product from one that is merely short.

    Raises:
        StockUnavailableError: If the product is missing, inactive or deleted
        InsufficientStockError: If fewer units than requested remain
    """
    product = await products.conditional_decrement(product_id, quantity)
    if product is not None:
        return product

    current = await products.get_by_id(product_id, refresh=True)
    if current is None or not current.is_purchasable:
        raise StockUnavailableError(
            product_id, current.name if current is not None else "Product"
        )
    raise InsufficientStockError(product_id, current.name, quantity, current.stock)


class OrderPlacementEngine:
    """
    Convert carts into orders without overselling.

    Attributes:
        transactions: Runs each placement as one retryable transaction
        notifier: Receives low stock and confirmation emails after commit
    """

    def __init__(self, transactions: TransactionManager, notifier: OrderNotifier):
        self.transactions = transactions
        self.notifier = notifier

        logger.info("OrderPlacementEngine initialized")

    async def place_order(
        self,
        user_id: Union[uuid.UUID, str],
        shipping_address: Mapping[str, Any],
        payment_method: Union[PaymentMethod, str] = PaymentMethod.COD,
    ) -> Order:
        """
        Place an order from the user's cart.

        Args:
            user_id: Buyer, who must exist and be active
            shipping_address: Address with full_name, line1, city, state,
                postal_code and phone
            payment_method: COD or Online

        Returns:
            The committed order with its items

        Raises:
            OrderValidationError: Bad input, unknown user or empty cart
            StockUnavailableError: A cart product can no longer be bought
            InsufficientStockError: A cart line asks for more than is in stock
            TransactionRetryExhaustedError: Conflicts outlasted the retry budget
        """
        buyer_id = parse_uuid(user_id, "Invalid user ID", field="user_id")
        address = validate_shipping_address(shipping_address)
        method = self._parse_payment_method(payment_method)

        async def operation(session: AsyncSession) -> tuple[Order, list[LowStockAlert]]:
            return await self._place(session, buyer_id, address, method)

        with log_performance(logger, "place_order", user_id=str(buyer_id)):
            order, alerts = await self.transactions.run(operation, name="place_order")

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            user_id=str(buyer_id),
            total_amount=str(order.total_amount),
            low_stock_products=len(alerts),
        )

        self.notifier.notify_low_stock(alerts)
        self.notifier.notify_order_placed(
            OrderEmail(
                order_id=order.id,
                order_number=order.order_number,
                user_id=order.user_id,
                status=order.status.value,
                total_amount=order.total_amount,
            )
        )
        return order

    async def _place(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        address: dict[str, str],
        payment_method: PaymentMethod,
    ) -> tuple[Order, list[LowStockAlert]]:
        user = await UserRepository(session).get_by_id(user_id)
        if user is None:
            raise OrderValidationError("User not found", user_id=str(user_id))
        if not user.can_place_orders:
            raise OrderValidationError("User account is inactive", user_id=str(user_id))

        carts = CartRepository(session)
        products = ProductRepository(session)

        lines = await carts.find_cart_lines(user_id)
        if not lines:
            raise OrderValidationError("Cart is empty", user_id=str(user_id))

        items: list[dict[str, Any]] = []
        alerts: list[LowStockAlert] = []
        total_amount = Decimal("0.00")

        # Ascending product id keeps row lock acquisition order consistent
        for line in sorted(lines, key=lambda cart_line: cart_line.product_id):
            product = await reserve_stock(products, line.product_id, line.quantity)

            unit_price = to_money(product.price)
            line_total = to_money(unit_price * line.quantity)
            total_amount += line_total
            items.append(
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "quantity": line.quantity,
                    "unit_price": unit_price,
                    "line_total": line_total,
                }
            )
            if product.is_low_stock:
                alerts.append(
                    LowStockAlert(
                        product_id=product.id,
                        product_name=product.name,
                        stock=product.stock,
                    )
                )

        order = await OrderRepository(session).create_order_with_items(
            user_id=user_id,
            order_number=generate_order_number(),
            shipping_address=address,
            total_amount=to_money(total_amount),
            items=items,
            payment_method=payment_method,
        )
        await carts.clear_cart(user_id)

        return order, alerts

    @staticmethod
    def _parse_payment_method(value: Union[PaymentMethod, str, None]) -> PaymentMethod:
        if value is None:
            return PaymentMethod.COD
        if isinstance(value, PaymentMethod):
            return value
        try:
            return PaymentMethod.from_string(value)
        except ValueError as e:
            raise OrderValidationError("Invalid payment method", payment_method=str(value)) from e
