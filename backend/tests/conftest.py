"""
Pytest configuration and shared test fixtures.

Integration fixtures run the real order workflows against a file-backed
SQLite database (one aiosqlite connection per session), so conditional
updates, rollbacks and concurrent placements behave as they do in production.
Outbound email is captured by a mock dispatcher.
"""

import os
import uuid

os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_NOTIFICATIONS_ENABLED", "false")

from decimal import Decimal
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from groceazy.database.connection import create_engine, create_session_factory
from groceazy.database.models import Base, Order, OrderStatusHistory, Product, User, UserRole
from groceazy.database.transaction import TransactionManager
from groceazy.services.cart.repository import CartRepository
from groceazy.services.notifications.order_notifier import OrderNotifier
from groceazy.services.orders.lifecycle import OrderLifecycleManager
from groceazy.services.orders.placement import OrderPlacementEngine
from groceazy.services.orders.repository import OrderRepository
from groceazy.services.orders.service import OrderService

ADMIN_EMAIL = "admin@groceazy.com"

VALID_ADDRESS = {
    "full_name": "Asha Rao",
    "line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
    "phone": "9876543210",
}


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh SQLite database file with the full schema."""
    db_engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'groceazy.db'}")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db_engine

    await db_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def transactions(session_factory) -> TransactionManager:
    return TransactionManager(session_factory, max_attempts=5, retry_backoff=0.01)


# ============================================================================
# Workflow Fixtures
# ============================================================================


@pytest.fixture
def dispatcher() -> AsyncMock:
    """Dispatcher double recording every queued email."""
    mock = AsyncMock()
    mock.notify = AsyncMock(return_value=None)
    return mock


@pytest.fixture
async def notifier(dispatcher, session_factory) -> AsyncGenerator[OrderNotifier, None]:
    order_notifier = OrderNotifier(dispatcher, session_factory, admin_email=ADMIN_EMAIL)
    yield order_notifier
    await order_notifier.wait_for_pending(timeout=5)


@pytest.fixture
def placement_engine(transactions, notifier) -> OrderPlacementEngine:
    return OrderPlacementEngine(transactions, notifier)


@pytest.fixture
def lifecycle_manager(transactions, notifier) -> OrderLifecycleManager:
    return OrderLifecycleManager(transactions, notifier, enable_out_for_delivery=True)


@pytest.fixture
def order_service(session_factory) -> OrderService:
    return OrderService(session_factory)


# ============================================================================
# Seed Data Helpers
# ============================================================================


@pytest.fixture
def make_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Factory inserting a user and returning it detached."""
    counter = {"n": 0}

    async def _make_user(
        role: UserRole = UserRole.CUSTOMER,
        is_active: bool = True,
        email: Optional[str] = None,
        name: str = "Test User",
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            role=role,
            is_active=is_active,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(session_factory) -> Callable[..., Awaitable[Product]]:
    """
    Factory inserting a product and returning it detached.

    Ids increase in creation order, so workflows that walk lines by product id
    visit products in the order a test created them.
    """
    counter = {"n": 0}

    async def _make_product(
        name: str = "Basmati Rice 1kg",
        price: str = "120.00",
        stock: int = 10,
        low_stock_threshold: int = 2,
        is_active: bool = True,
        is_deleted: bool = False,
    ) -> Product:
        counter["n"] += 1
        product = Product(
            id=uuid.UUID(int=counter["n"]),
            name=name,
            price=Decimal(price),
            stock=stock,
            low_stock_threshold=low_stock_threshold,
            is_active=is_active,
            is_deleted=is_deleted,
        )
        async with session_factory() as session:
            session.add(product)
            await session.commit()
        return product

    return _make_product


@pytest.fixture
def add_to_cart(transactions) -> Callable[..., Awaitable[None]]:
    async def _add_to_cart(user: User, product: Product, quantity: int = 1) -> None:
        async def operation(session: AsyncSession) -> None:
            await CartRepository(session).add_item(user.id, product.id, quantity)

        await transactions.run(operation, name="add_to_cart")

    return _add_to_cart


@pytest.fixture
def set_product(session_factory) -> Callable[..., Awaitable[None]]:
    """Overwrite product columns, e.g. to withdraw it after it was carted."""

    async def _set_product(product: Product, **values: Any) -> None:
        async with session_factory() as session:
            stored = await session.get(Product, product.id)
            for key, value in values.items():
                setattr(stored, key, value)
            await session.commit()

    return _set_product


@pytest.fixture
def get_stock(session_factory) -> Callable[[Product], Awaitable[int]]:
    async def _get_stock(product: Product) -> int:
        async with session_factory() as session:
            stored = await session.get(Product, product.id)
            return stored.stock

    return _get_stock


@pytest.fixture
def cart_size(session_factory) -> Callable[[User], Awaitable[int]]:
    async def _cart_size(user: User) -> int:
        async with session_factory() as session:
            return len(await CartRepository(session).find_cart_lines(user.id))

    return _cart_size


@pytest.fixture
def load_order(session_factory) -> Callable[..., Awaitable[Optional[Order]]]:
    async def _load_order(order_id) -> Optional[Order]:
        async with session_factory() as session:
            return await OrderRepository(session).get_order_by_id(order_id)

    return _load_order


@pytest.fixture
def load_history(session_factory) -> Callable[..., Awaitable[list[OrderStatusHistory]]]:
    async def _load_history(order_id) -> list[OrderStatusHistory]:
        async with session_factory() as session:
            return list(await OrderRepository(session).get_status_history(order_id))

    return _load_history


@pytest.fixture
def count_orders(session_factory) -> Callable[[], Awaitable[int]]:
    async def _count_orders() -> int:
        async with session_factory() as session:
            _, total, _ = await OrderRepository(session).get_all_orders(1, 1)
            return total

    return _count_orders


@pytest.fixture
def shipping_address() -> dict[str, str]:
    return dict(VALID_ADDRESS)
