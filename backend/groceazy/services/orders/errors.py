"""Domain exceptions raised by the order placement and lifecycle workflows."""

from typing import Any


class OrderServiceError(Exception):
    """Base exception for order service errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class OrderValidationError(OrderServiceError):
    """Raised when input is malformed or a precondition on it fails."""

    pass


class OrderNotFoundError(OrderServiceError):
    """Raised when an order does not exist or is not visible to the caller."""

    pass


class OrderStateError(OrderServiceError):
    """Raised when the order's current status forbids the requested change."""

    pass


class StockUnavailableError(OrderServiceError):
    """Raised when a product is deleted, inactive or missing."""

    def __init__(self, product_id: Any, product_name: str = "Product"):
        super().__init__(
            f'Product "{product_name}" is no longer available',
            product_id=str(product_id),
            product_name=product_name,
        )
        self.product_id = product_id
        self.product_name = product_name


class InsufficientStockError(OrderServiceError):
    """Raised when a product has fewer units than requested."""

    def __init__(self, product_id: Any, product_name: str, requested: int, available: int):
        super().__init__(
            f'Insufficient stock for "{product_name}" '
            f"(requested: {requested}, available: {available})",
            product_id=str(product_id),
            product_name=product_name,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
