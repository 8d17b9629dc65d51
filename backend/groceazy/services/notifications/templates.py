"""
Notification template engine with Jinja2 for email rendering.

Each email is a pair of templates, ``<name>_subject.txt`` and ``<name>.txt``,
held in memory so the worker and the API render identical text without
shipping template files alongside the package.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from jinja2 import (
    DictLoader,
    Environment,
    StrictUndefined,
    Template,
    TemplateError,
    TemplateNotFound,
)

from groceazy.core.logging import get_logger

logger = get_logger(__name__)

LOW_STOCK = "low_stock"
ORDER_CONFIRMED = "order_confirmed"
ORDER_STATUS_UPDATE = "order_status_update"
ORDER_CANCELLED = "order_cancelled"

EMAIL_TEMPLATES: Dict[str, str] = {
    f"{LOW_STOCK}_subject.txt": "Low Stock Alert: {{ product_name }}",
    f"{LOW_STOCK}.txt": """\
Alert: Low Stock for Product

Product: {{ product_name }}
ID: {{ product_id }}
Current Stock: {{ current_stock }}

Please restock immediately.

Regards,
GrocEazy System
""",
    f"{ORDER_CONFIRMED}_subject.txt": "Order Confirmed: #{{ order_number }}",
    f"{ORDER_CONFIRMED}.txt": """\
Hello {{ user_name }},

Your order #{{ order_number }} has been confirmed!
Total Amount: {{ total_amount | currency }}

We will notify you when it ships.

Regards,
GrocEazy
""",
    f"{ORDER_STATUS_UPDATE}_subject.txt": "Order Update: #{{ order_number }} is {{ status }}",
    f"{ORDER_STATUS_UPDATE}.txt": """\
Hello {{ user_name }},

Your order #{{ order_number }} is now {{ status }}.

{% if status == "Out for Delivery" %}Get ready!{% else %}Track your order in the app.{% endif %}

Regards,
GrocEazy
""",
    f"{ORDER_CANCELLED}_subject.txt": "Order Cancelled: #{{ order_number }}",
    f"{ORDER_CANCELLED}.txt": """\
Hello {{ user_name }},

Your order #{{ order_number }} has been cancelled.
If you have any questions, please contact support.

Regards,
GrocEazy
""",
}


class TemplateEngineError(Exception):
    """Base exception for template engine errors."""

    def __init__(self, message: str, template_name: Optional[str] = None):
        super().__init__(message)
        self.template_name = template_name


class TemplateNotFoundError(TemplateEngineError):
    """Raised when a template cannot be found."""

    pass


class TemplateRenderError(TemplateEngineError):
    """Raised when template rendering fails."""

    pass


class TemplateEngine:
    """
    Template engine for rendering notification emails.

    Undefined variables raise instead of rendering as blanks, so a missing
    context key surfaces as a TemplateRenderError.
    """

    def __init__(self, templates: Optional[Dict[str, str]] = None):
        """
        Initialize the template engine.

        Args:
            templates: Mapping of template file names to sources, defaults to
                the built-in order and stock emails
        """
        self.env = Environment(
            loader=DictLoader(templates or EMAIL_TEMPLATES),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters["currency"] = self._format_currency

    def render_email(self, template_name: str, context: Dict[str, Any]) -> Dict[str, str]:
        """
        Render an email template.

        Args:
            template_name: Template base name, e.g. ``order_confirmed``
            context: Variables to substitute

        Returns:
            Dictionary containing 'subject' and 'text_body'

        Raises:
            TemplateNotFoundError: If the template cannot be found
            TemplateRenderError: If rendering fails
        """
        try:
            subject = self._load_template(f"{template_name}_subject.txt").render(**context)
            text_body = self._load_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound as e:
            logger.error("Email template not found", template_name=template_name)
            raise TemplateNotFoundError(
                f"Email template not found: {template_name}",
                template_name=template_name,
            ) from e
        except TemplateError as e:
            logger.error(
                "Email template rendering failed",
                template_name=template_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TemplateRenderError(
                f"Failed to render email template: {e}",
                template_name=template_name,
            ) from e

        return {"subject": subject.strip(), "text_body": text_body}

    def _load_template(self, template_path: str) -> Template:
        return self.env.get_template(template_path)

    @staticmethod
    def _format_currency(value: Any, symbol: str = "₹") -> str:
        """Format an amount with two decimals and the rupee sign."""
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        return f"{symbol}{amount:,.2f}"


_template_engine: Optional[TemplateEngine] = None


def get_template_engine() -> TemplateEngine:
    """Get the shared template engine instance."""
    global _template_engine
    if _template_engine is None:
        _template_engine = TemplateEngine()
    return _template_engine
