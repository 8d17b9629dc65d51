"""
Best-effort emails triggered by the order workflows.

Workflows call the ``notify_*`` methods after their transaction committed.
Each call schedules a background task that looks up recipients on its own
session, renders the email and hands it to the dispatcher. Any failure along
the way is logged and dropped: a lost email never affects an order.
"""

import asyncio
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Coroutine, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger
from groceazy.services.notifications import templates
from groceazy.services.notifications.dispatcher import NotificationDispatcher
from groceazy.services.notifications.templates import TemplateEngine, get_template_engine
from groceazy.services.users.repository import UserRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class LowStockAlert:
    """Product state captured right after its stock was decremented."""

    product_id: uuid.UUID
    product_name: str
    stock: int


@dataclass(frozen=True)
class OrderEmail:
    """Order fields an email needs, detached from any session."""

    order_id: uuid.UUID
    order_number: str
    user_id: uuid.UUID
    status: str
    total_amount: Decimal


class OrderNotifier:
    """Schedule and track order and stock emails."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        session_factory: async_sessionmaker[AsyncSession],
        template_engine: Optional[TemplateEngine] = None,
        admin_email: Optional[str] = None,
    ):
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.template_engine = template_engine or get_template_engine()
        self.admin_email = admin_email if admin_email is not None else get_settings().admin_alert_email
        self._pending: set[asyncio.Task] = set()

        logger.info("OrderNotifier initialized", admin_alerts=bool(self.admin_email))

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
        """
        Run a notification coroutine in the background.

        The task is tracked until it finishes; its exceptions are logged and
        never reach the caller.
        """
        task = asyncio.create_task(self._run_guarded(coro, name), name=name)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run_guarded(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except Exception as e:
            logger.error(
                "Notification failed",
                notification=name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def wait_for_pending(self, timeout: Optional[float] = None) -> None:
        """Wait for scheduled notifications, e.g. during shutdown."""
        if not self._pending:
            return
        done, not_done = await asyncio.wait(set(self._pending), timeout=timeout)
        if not_done:
            logger.warning("Notifications still pending at shutdown", count=len(not_done))

    def notify_low_stock(self, alerts: Sequence[LowStockAlert]) -> Optional[asyncio.Task]:
        if not alerts:
            return None
        return self.spawn(self._send_low_stock_alerts(list(alerts)), name="low_stock_alert")

    def notify_order_placed(self, order: OrderEmail) -> asyncio.Task:
        return self.spawn(
            self._send_customer_email(
                order,
                templates.ORDER_CONFIRMED,
                {"total_amount": order.total_amount},
            ),
            name="order_confirmed",
        )

    def notify_status_change(self, order: OrderEmail) -> asyncio.Task:
        return self.spawn(
            self._send_customer_email(
                order,
                templates.ORDER_STATUS_UPDATE,
                {"status": order.status},
            ),
            name="order_status_update",
        )

    def notify_cancelled(self, order: OrderEmail) -> asyncio.Task:
        return self.spawn(
            self._send_customer_email(order, templates.ORDER_CANCELLED, {}),
            name="order_cancelled",
        )

    async def _send_low_stock_alerts(self, alerts: list[LowStockAlert]) -> None:
        async with self.session_factory() as session:
            managers = await UserRepository(session).list_active_managers()

        recipients = [manager.email for manager in managers]
        if self.admin_email:
            recipients.append(self.admin_email)

        if not recipients:
            logger.warning("Low stock alert has no recipients", product_count=len(alerts))
            return

        for alert in alerts:
            email = self.template_engine.render_email(
                templates.LOW_STOCK,
                {
                    "product_name": alert.product_name,
                    "product_id": str(alert.product_id),
                    "current_stock": alert.stock,
                },
            )
            await self.dispatcher.notify(recipients, email["subject"], email["text_body"])
            logger.info(
                "Low stock alert sent",
                product_id=str(alert.product_id),
                stock=alert.stock,
                recipient_count=len(recipients),
            )

    async def _send_customer_email(
        self,
        order: OrderEmail,
        template_name: str,
        context: dict[str, Any],
    ) -> None:
        async with self.session_factory() as session:
            user = await UserRepository(session).get_by_id(order.user_id)

        if user is None or not user.email:
            logger.warning(
                "Customer email skipped, user not found",
                order_id=str(order.order_id),
                user_id=str(order.user_id),
            )
            return

        email = self.template_engine.render_email(
            template_name,
            {"user_name": user.name, "order_number": order.order_number, **context},
        )
        await self.dispatcher.notify([user.email], email["subject"], email["text_body"])
