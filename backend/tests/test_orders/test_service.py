"""
Tests for the order read service.

Orders are created through the real placement workflow so that the reads
see exactly what production writes.
"""

import uuid

import pytest

from groceazy.database.models import UserRole
from groceazy.services.orders.enums import OrderStatus
from groceazy.services.orders.errors import OrderNotFoundError, OrderValidationError


@pytest.fixture
def place(placement_engine, add_to_cart, make_product, shipping_address):
    """Place one single-line order for the given user."""

    async def _place(user, quantity: int = 1):
        product = await make_product(stock=50)
        await add_to_cart(user, product, quantity)
        return await placement_engine.place_order(user.id, shipping_address)

    return _place


class TestGetOrder:
    async def test_owner_sees_order_with_items(self, order_service, make_user, place):
        user = await make_user()
        placed = await place(user, quantity=3)

        order = await order_service.get_order(user.id, str(placed.id))

        assert order.id == placed.id
        assert [item.quantity for item in order.items] == [3]

    async def test_other_user_gets_not_found(self, order_service, make_user, place):
        owner = await make_user()
        stranger = await make_user()
        placed = await place(owner)

        with pytest.raises(OrderNotFoundError, match="Order not found"):
            await order_service.get_order(stranger.id, placed.id)

    async def test_unknown_id(self, order_service, make_user):
        user = await make_user()

        with pytest.raises(OrderNotFoundError):
            await order_service.get_order(user.id, uuid.uuid4())

    async def test_malformed_id(self, order_service, make_user):
        user = await make_user()

        with pytest.raises(OrderValidationError, match="Invalid Order ID"):
            await order_service.get_order(user.id, "not-an-id")


class TestListUserOrders:
    async def test_newest_first(self, order_service, make_user, place):
        user = await make_user()
        first = await place(user)
        second = await place(user)

        orders = await order_service.list_user_orders(user.id)

        assert [order.id for order in orders] == [second.id, first.id]

    async def test_only_own_orders(self, order_service, make_user, place):
        user = await make_user()
        other = await make_user()
        await place(other)

        assert list(await order_service.list_user_orders(user.id)) == []


class TestListAllOrders:
    async def test_pagination(self, order_service, make_user, place):
        # Arrange
        customer = await make_user()
        manager = await make_user(role=UserRole.MANAGER)
        placed = [await place(customer), await place(manager), await place(customer)]

        # Act
        first_page = await order_service.list_all_orders(page=1, limit=2)
        last_page = await order_service.list_all_orders(page=2, limit=2)

        # Assert
        assert first_page["pagination"] == {"total": 3, "page": 1, "pages": 2}
        assert [o.id for o in first_page["orders"]] == [placed[2].id, placed[1].id]
        assert [o.id for o in last_page["orders"]] == [placed[0].id]

    async def test_empty(self, order_service):
        result = await order_service.list_all_orders()

        assert result["orders"] == []
        assert result["pagination"] == {"total": 0, "page": 1, "pages": 0}

    @pytest.mark.parametrize("page,limit", [(0, 20), (1, 0), (1, 101)])
    async def test_rejects_bad_paging(self, order_service, page, limit):
        with pytest.raises(OrderValidationError):
            await order_service.list_all_orders(page=page, limit=limit)


class TestGetOrderHistory:
    async def test_changes_oldest_first(
        self, order_service, lifecycle_manager, make_user, place
    ):
        # Arrange
        customer = await make_user()
        manager = await make_user(role=UserRole.MANAGER)
        placed = await place(customer)
        await lifecycle_manager.update_order_status(
            placed.id, "Processing", changed_by=manager.id, reason="Packed"
        )

        # Act
        history = await order_service.get_order_history(str(placed.id))

        # Assert
        assert [(h.from_status, h.to_status) for h in history] == [
            (OrderStatus.PENDING, OrderStatus.PENDING),
            (OrderStatus.PENDING, OrderStatus.PROCESSING),
        ]
        assert history[0].change_reason == "Order placed"
        assert history[1].changed_by == manager.id
        assert history[1].change_reason == "Packed"

    async def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFoundError):
            await order_service.get_order_history(uuid.uuid4())

    async def test_malformed_id(self, order_service):
        with pytest.raises(OrderValidationError, match="Invalid Order ID"):
            await order_service.get_order_history("42")
