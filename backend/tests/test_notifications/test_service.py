"""
Tests for email templates, the notification dispatcher and the order notifier.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from groceazy.database.models import UserRole
from groceazy.services.notifications import templates
from groceazy.services.notifications.dispatcher import NotificationDispatcher
from groceazy.services.notifications.order_notifier import (
    LowStockAlert,
    OrderEmail,
    OrderNotifier,
)
from groceazy.services.notifications.templates import (
    TemplateEngine,
    TemplateNotFoundError,
    TemplateRenderError,
)


# ============================================================================
# Template Tests
# ============================================================================


class TestTemplateEngine:
    @pytest.fixture
    def engine(self):
        return TemplateEngine()

    def test_order_confirmed(self, engine):
        email = engine.render_email(
            templates.ORDER_CONFIRMED,
            {
                "user_name": "Asha",
                "order_number": "ORD-1",
                "total_amount": Decimal("1234.5"),
            },
        )

        assert email["subject"] == "Order Confirmed: #ORD-1"
        assert "Hello Asha," in email["text_body"]
        assert "Total Amount: ₹1,234.50" in email["text_body"]

    def test_low_stock(self, engine):
        email = engine.render_email(
            templates.LOW_STOCK,
            {"product_name": "Milk", "product_id": "p-1", "current_stock": 2},
        )

        assert email["subject"] == "Low Stock Alert: Milk"
        assert "Current Stock: 2" in email["text_body"]

    @pytest.mark.parametrize(
        "status,closing",
        [("Out for Delivery", "Get ready!"), ("Shipped", "Track your order in the app.")],
    )
    def test_status_update(self, engine, status, closing):
        email = engine.render_email(
            templates.ORDER_STATUS_UPDATE,
            {"user_name": "Asha", "order_number": "ORD-1", "status": status},
        )

        assert email["subject"] == f"Order Update: #ORD-1 is {status}"
        assert closing in email["text_body"]

    def test_unknown_template(self, engine):
        with pytest.raises(TemplateNotFoundError):
            engine.render_email("refund_issued", {})

    def test_missing_variable(self, engine):
        with pytest.raises(TemplateRenderError):
            engine.render_email(templates.ORDER_CANCELLED, {"user_name": "Asha"})


# ============================================================================
# Dispatcher Tests
# ============================================================================


class TestNotificationDispatcher:
    @pytest.fixture
    def task(self):
        return MagicMock()

    async def test_queues_deduplicated_recipients(self, task):
        dispatcher = NotificationDispatcher(task=task, enabled=True)

        await dispatcher.notify(["a@example.com", "", "a@example.com", "b@example.com"], "S", "B")

        task.apply_async.assert_called_once_with(
            kwargs={
                "recipients": ["a@example.com", "b@example.com"],
                "subject": "S",
                "body": "B",
            }
        )

    async def test_disabled_drops_email(self, task):
        dispatcher = NotificationDispatcher(task=task, enabled=False)

        await dispatcher.notify(["a@example.com"], "S", "B")

        task.apply_async.assert_not_called()

    async def test_no_recipients(self, task):
        dispatcher = NotificationDispatcher(task=task, enabled=True)

        await dispatcher.notify([None, ""], "S", "B")

        task.apply_async.assert_not_called()

    async def test_broker_error_propagates(self, task):
        task.apply_async.side_effect = ConnectionError("broker down")
        dispatcher = NotificationDispatcher(task=task, enabled=True)

        with pytest.raises(ConnectionError):
            await dispatcher.notify(["a@example.com"], "S", "B")


# ============================================================================
# Order Notifier Tests
# ============================================================================


class TestOrderNotifier:
    def _order_email(self, user_id) -> OrderEmail:
        return OrderEmail(
            order_id=uuid.uuid4(),
            order_number="ORD-1",
            user_id=user_id,
            status="Shipped",
            total_amount=Decimal("99.00"),
        )

    async def test_low_stock_goes_to_managers_and_admin(self, session_factory, make_user):
        # Arrange
        await make_user(role=UserRole.MANAGER, email="m1@groceazy.com")
        await make_user(role=UserRole.MANAGER, email="m2@groceazy.com", is_active=False)
        await make_user(role=UserRole.CUSTOMER, email="c@example.com")
        dispatcher = AsyncMock()
        notifier = OrderNotifier(dispatcher, session_factory, admin_email="admin@groceazy.com")

        # Act
        notifier.notify_low_stock([LowStockAlert(uuid.uuid4(), "Milk", 1)])
        await notifier.wait_for_pending(timeout=5)

        # Assert
        recipients, subject, _ = dispatcher.notify.await_args.args
        assert recipients == ["m1@groceazy.com", "admin@groceazy.com"]
        assert subject == "Low Stock Alert: Milk"

    async def test_low_stock_without_recipients(self, session_factory):
        dispatcher = AsyncMock()
        notifier = OrderNotifier(dispatcher, session_factory, admin_email="")

        notifier.notify_low_stock([LowStockAlert(uuid.uuid4(), "Milk", 1)])
        await notifier.wait_for_pending(timeout=5)

        dispatcher.notify.assert_not_awaited()

    async def test_no_alerts_schedules_nothing(self, session_factory):
        notifier = OrderNotifier(AsyncMock(), session_factory, admin_email="")

        assert notifier.notify_low_stock([]) is None
        assert notifier.pending_count == 0

    async def test_status_email(self, session_factory, make_user):
        user = await make_user(email="asha@example.com", name="Asha")
        dispatcher = AsyncMock()
        notifier = OrderNotifier(dispatcher, session_factory, admin_email="")

        notifier.notify_status_change(self._order_email(user.id))
        await notifier.wait_for_pending(timeout=5)

        recipients, subject, body = dispatcher.notify.await_args.args
        assert recipients == ["asha@example.com"]
        assert subject == "Order Update: #ORD-1 is Shipped"
        assert "Hello Asha," in body

    async def test_missing_user_is_skipped(self, session_factory):
        dispatcher = AsyncMock()
        notifier = OrderNotifier(dispatcher, session_factory, admin_email="")

        notifier.notify_cancelled(self._order_email(uuid.uuid4()))
        await notifier.wait_for_pending(timeout=5)

        dispatcher.notify.assert_not_awaited()

    async def test_dispatch_failure_is_contained(self, session_factory, make_user):
        user = await make_user()
        dispatcher = AsyncMock()
        dispatcher.notify.side_effect = RuntimeError("broker down")
        notifier = OrderNotifier(dispatcher, session_factory, admin_email="")

        task = notifier.notify_order_placed(self._order_email(user.id))
        await notifier.wait_for_pending(timeout=5)

        assert task.done()
        assert task.exception() is None
        assert notifier.pending_count == 0
