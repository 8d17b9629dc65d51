"""
User model with role management.

Accounts are owned by the authentication service; the order core reads them to
validate the buyer, to find active managers for stock alerts and to address
customer emails.
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Enum as SQLEnum, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groceazy.database.base import SoftDeleteModel

if TYPE_CHECKING:
    from groceazy.database.models.cart import CartItem
    from groceazy.database.models.order import Order


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""

    CUSTOMER = "customer"
    MANAGER = "manager"
    ADMIN = "admin"

    @classmethod
    def from_string(cls, value: str) -> "UserRole":
        """
        Convert string to UserRole enum.

        Args:
            value: String representation of role

        Returns:
            UserRole enum value

        Raises:
            ValueError: If value is not a valid role
        """
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Invalid role: {value}")

    def has_permission(self, required_role: "UserRole") -> bool:
        """
        Check if this role has permission for required role.

        Args:
            required_role: The role required for access

        Returns:
            True if this role has sufficient permissions
        """
        role_hierarchy = {
            UserRole.CUSTOMER: 0,
            UserRole.MANAGER: 1,
            UserRole.ADMIN: 2,
        }
        return role_hierarchy[self] >= role_hierarchy[required_role]


class User(SoftDeleteModel):
    """
    Shopper or staff account.

    Attributes:
        id: Unique user identifier (UUID)
        name: Display name used in emails
        email: User email address (unique)
        role: customer, manager or admin
        is_active: Account active status
        is_deleted: Soft deletion flag (from SoftDeleteModel)
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="User display name",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="User email address",
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="user_role",
            native_enum=False,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
        ),
        nullable=False,
        default=UserRole.CUSTOMER,
        comment="User role for access control",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Account active status",
    )

    cart_items: Mapped[list["CartItem"]] = relationship(
        "CartItem",
        back_populates="user",
        lazy="noload",
        cascade="all, delete-orphan",
    )

    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="user",
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_users_role_active", "role", "is_active"),
        CheckConstraint("length(email) >= 3", name="ck_users_email_min_length"),
        {"comment": "Shopper and staff accounts"},
    )

    @property
    def can_place_orders(self) -> bool:
        return self.is_active and not self.is_deleted

    @property
    def is_staff(self) -> bool:
        """Check if user is a manager or admin."""
        return self.role.has_permission(UserRole.MANAGER)
