"""
Order Pydantic schemas for API request/response validation.

Request bodies accept snake_case or camelCase keys. Business rules on the
values (required address fields, allowed statuses) are enforced by the order
workflows, which answer with 400 and a descriptive message.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from groceazy.services.orders.enums import OrderStatus, PaymentMethod, PaymentStatus


class ShippingAddressRequest(BaseModel):
    """Shipping address captured at checkout."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    full_name: Optional[str] = Field(None, max_length=200, description="Recipient name")
    line1: Optional[str] = Field(None, max_length=255, description="Address line")
    line2: Optional[str] = Field(None, max_length=255, description="Second address line")
    city: Optional[str] = Field(None, max_length=100, description="City")
    state: Optional[str] = Field(None, max_length=100, description="State")
    postal_code: Optional[str] = Field(None, max_length=20, description="Postal code")
    phone: Optional[str] = Field(None, max_length=20, description="Contact phone")


class OrderCreateRequest(BaseModel):
    """Request schema for placing an order from the caller's cart."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    shipping_address: ShippingAddressRequest = Field(
        ...,
        description="Shipping address",
    )
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.COD,
        description="Payment method",
    )


class OrderStatusUpdateRequest(BaseModel):
    """Request schema for a staff status change."""

    status: str = Field(..., min_length=1, max_length=50, description="Target status")
    reason: Optional[str] = Field(None, max_length=500, description="Reason for the change")


class PaymentUpdateRequest(BaseModel):
    """Request schema for recording a payment outcome."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_status: str = Field(..., min_length=1, max_length=20, description="Payment status")


class OrderItemResponse(BaseModel):
    """Order item response."""

    model_config = ConfigDict(from_attributes=True)

    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderResponse(BaseModel):
    """Complete order response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    user_id: UUID
    shipping_address: dict[str, Any]
    items: list[OrderItemResponse]
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    total_amount: Decimal
    placed_at: datetime
    cancelled_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class OrderStatusHistoryResponse(BaseModel):
    """One recorded status change."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_status: OrderStatus
    to_status: OrderStatus
    changed_by: Optional[UUID] = None
    change_reason: Optional[str] = None
    created_at: datetime


class PaginationResponse(BaseModel):
    total: int
    page: int
    pages: int


class OrderListResponse(BaseModel):
    """Paginated order list for staff."""

    orders: list[OrderResponse]
    pagination: PaginationResponse
