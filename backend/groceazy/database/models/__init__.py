"""
Database models package initialization.

Models are imported here to ensure they are registered with the Base metadata
for migration generation and relationship resolution.
"""

from groceazy.database.base import (
    Base,
    BaseModel,
    SoftDeleteMixin,
    SoftDeleteModel,
    TimestampMixin,
    UUIDMixin,
)
from groceazy.database.models.cart import CartItem
from groceazy.database.models.order import Order, OrderItem, OrderStatusHistory
from groceazy.database.models.product import Product
from groceazy.database.models.user import User, UserRole

__all__ = [
    "Base",
    "BaseModel",
    "SoftDeleteModel",
    "TimestampMixin",
    "UUIDMixin",
    "SoftDeleteMixin",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "Product",
    "User",
    "UserRole",
]
