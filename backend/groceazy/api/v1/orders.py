"""
Order API endpoints for GrocEazy.

Customers place orders from their cart, read and cancel their own orders;
managers and admins page through every order, move orders between statuses
and record payments. Business failures come back as 400/404 with the
workflow's message, retry exhaustion as 503.
"""

from typing import NoReturn

from fastapi import APIRouter, HTTPException, Query, Request, status

from groceazy.api.deps import (
    CurrentStaff,
    CurrentUser,
    LifecycleManager,
    OrderReadService,
    PlacementEngine,
)
from groceazy.core.logging import get_logger
from groceazy.core.rate_limit import limiter, order_placement_limit
from groceazy.database.transaction import TransactionRetryExhaustedError
from groceazy.schemas.orders import (
    OrderCreateRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatusHistoryResponse,
    OrderStatusUpdateRequest,
    PaymentUpdateRequest,
)
from groceazy.services.orders.errors import OrderNotFoundError, OrderServiceError
from groceazy.services.orders.service import MAX_PAGE_SIZE

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

RETRY_EXHAUSTED_DETAIL = "The order could not be processed right now, please try again"


def _raise_http_error(exc: Exception, **log_context) -> NoReturn:
    """Translate a workflow error into the matching HTTP error."""
    if isinstance(exc, OrderNotFoundError):
        logger.info("Order not found", error=exc.message, **log_context)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc

    if isinstance(exc, OrderServiceError):
        logger.warning(
            "Order request rejected",
            error=exc.message,
            error_type=type(exc).__name__,
            context=exc.context,
            **log_context,
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc

    if isinstance(exc, TransactionRetryExhaustedError):
        logger.error("Order request exhausted retries", error=str(exc), **log_context)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=RETRY_EXHAUSTED_DETAIL,
        ) from exc

    raise exc


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place order",
    description="Place an order from the caller's cart, reserving stock for every line",
)
@limiter.limit(order_placement_limit)
async def place_order(
    request: Request,
    payload: OrderCreateRequest,
    current_user: CurrentUser,
    engine: PlacementEngine,
) -> OrderResponse:
    """
    Place an order from the current cart.

    Raises:
        HTTPException: 400 for an empty cart, a bad address or short stock,
            503 if the transaction kept conflicting
    """
    logger.info("Placing order", user_id=str(current_user.id))

    try:
        order = await engine.place_order(
            user_id=current_user.id,
            shipping_address=payload.shipping_address.model_dump(exclude_none=True),
            payment_method=payload.payment_method,
        )
    except (OrderServiceError, TransactionRetryExhaustedError) as e:
        _raise_http_error(e, user_id=str(current_user.id))

    return OrderResponse.model_validate(order)


@router.get(
    "",
    response_model=list[OrderResponse],
    summary="List my orders",
)
async def list_my_orders(
    current_user: CurrentUser,
    orders: OrderReadService,
) -> list[OrderResponse]:
    """Get the caller's orders, newest first."""
    try:
        results = await orders.list_user_orders(current_user.id)
    except OrderServiceError as e:
        _raise_http_error(e, user_id=str(current_user.id))

    return [OrderResponse.model_validate(order) for order in results]


@router.get(
    "/all",
    response_model=OrderListResponse,
    summary="List all orders",
    description="Paginated list of every order, for managers and admins",
)
async def list_all_orders(
    current_user: CurrentStaff,
    orders: OrderReadService,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE, description="Orders per page"),
) -> OrderListResponse:
    try:
        result = await orders.list_all_orders(page=page, limit=limit)
    except OrderServiceError as e:
        _raise_http_error(e, user_id=str(current_user.id))

    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in result["orders"]],
        pagination=result["pagination"],
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
)
async def get_order(
    order_id: str,
    current_user: CurrentUser,
    orders: OrderReadService,
) -> OrderResponse:
    """
    Get one of the caller's orders.

    Raises:
        HTTPException: 400 for a malformed id, 404 if the order is not the caller's
    """
    try:
        order = await orders.get_order(current_user.id, order_id)
    except OrderServiceError as e:
        _raise_http_error(e, user_id=str(current_user.id), order_id=order_id)

    return OrderResponse.model_validate(order)


@router.get(
    "/{order_id}/history",
    response_model=list[OrderStatusHistoryResponse],
    summary="Get order status history",
    description="Audit trail of every status change, for managers and admins",
)
async def get_order_history(
    order_id: str,
    current_user: CurrentStaff,
    orders: OrderReadService,
) -> list[OrderStatusHistoryResponse]:
    try:
        history = await orders.get_order_history(order_id)
    except OrderServiceError as e:
        _raise_http_error(e, user_id=str(current_user.id), order_id=order_id)

    return [OrderStatusHistoryResponse.model_validate(entry) for entry in history]


@router.patch(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel order",
    description="Cancel a Pending or Processing order and return its units to stock",
)
async def cancel_order(
    order_id: str,
    current_user: CurrentUser,
    lifecycle: LifecycleManager,
) -> OrderResponse:
    try:
        order = await lifecycle.cancel_order(current_user.id, order_id)
    except (OrderServiceError, TransactionRetryExhaustedError) as e:
        _raise_http_error(e, user_id=str(current_user.id), order_id=order_id)

    return OrderResponse.model_validate(order)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
    description="Move an order to another status, keeping stock in step",
)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateRequest,
    current_user: CurrentStaff,
    lifecycle: LifecycleManager,
) -> OrderResponse:
    """
    Set an order's status.

    Cancelling returns units to stock; reviving a cancelled order takes them
    again and fails with 400 if any product is short.
    """
    try:
        order = await lifecycle.update_order_status(
            order_id,
            payload.status,
            changed_by=current_user.id,
            reason=payload.reason,
        )
    except (OrderServiceError, TransactionRetryExhaustedError) as e:
        _raise_http_error(e, user_id=str(current_user.id), order_id=order_id)

    return OrderResponse.model_validate(order)


@router.patch(
    "/{order_id}/payment",
    response_model=OrderResponse,
    summary="Record payment",
)
async def record_payment(
    order_id: str,
    payload: PaymentUpdateRequest,
    current_user: CurrentStaff,
    lifecycle: LifecycleManager,
) -> OrderResponse:
    try:
        order = await lifecycle.record_payment(
            order_id,
            payload.payment_status,
            changed_by=current_user.id,
        )
    except (OrderServiceError, TransactionRetryExhaustedError) as e:
        _raise_http_error(e, user_id=str(current_user.id), order_id=order_id)

    return OrderResponse.model_validate(order)
