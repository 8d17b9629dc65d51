"""
Alembic migration: Create the grocery order schema.

Creates users, products (with the per-product stock ledger), cart_items,
orders, order_items and order_status_history. Stock can never go negative:
the products table carries a CHECK constraint backing the conditional
decrement used at order placement. Status columns store display values
such as 'Out for Delivery' in plain VARCHAR columns.

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was last updated',
        ),
    ]


def _soft_delete() -> list[sa.Column]:
    return [
        sa.Column(
            'is_deleted',
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment='Whether the record has been soft deleted',
        ),
        sa.Column(
            'deleted_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Timestamp when record was soft deleted',
        ),
    ]


def upgrade() -> None:
    """
    Upgrade database schema with the order core tables.

    Tables are created parent first so foreign keys resolve.
    """
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False, comment='User display name'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='User email address'),
        sa.Column(
            'role',
            sa.String(length=20),
            nullable=False,
            server_default='customer',
            comment='User role for access control',
        ),
        sa.Column(
            'is_active',
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
            comment='Account active status',
        ),
        *_soft_delete(),
        *_timestamps(),
        sa.CheckConstraint('length(email) >= 3', name='ck_users_email_min_length'),
        comment='Shopper and staff accounts',
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role_active', 'users', ['role', 'is_active'])

    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Product display name'),
        sa.Column('description', sa.Text(), nullable=True, comment='Product description'),
        sa.Column(
            'price',
            sa.Numeric(precision=10, scale=2),
            nullable=False,
            comment='Authoritative unit price',
        ),
        sa.Column(
            'stock',
            sa.Integer(),
            nullable=False,
            server_default=sa.text('0'),
            comment='Units available for purchase',
        ),
        sa.Column(
            'low_stock_threshold',
            sa.Integer(),
            nullable=False,
            server_default=sa.text('5'),
            comment='Stock level that triggers a low stock alert',
        ),
        sa.Column(
            'is_active',
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
            comment='Whether the product is listed for sale',
        ),
        *_soft_delete(),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
        sa.CheckConstraint(
            'low_stock_threshold >= 0',
            name='ck_products_low_stock_threshold_non_negative',
        ),
        comment='Grocery catalog with per-product stock ledger',
    )
    op.create_index('ix_products_active_deleted', 'products', ['is_active', 'is_deleted'])
    op.create_index('ix_products_stock', 'products', ['stock'])

    op.create_table(
        'cart_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
            comment='Owning user',
        ),
        sa.Column(
            'product_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('products.id', ondelete='CASCADE'),
            nullable=False,
            comment='Product in the cart',
        ),
        sa.Column(
            'quantity',
            sa.Integer(),
            nullable=False,
            server_default=sa.text('1'),
            comment='Requested quantity',
        ),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'product_id', name='uq_cart_items_user_product'),
        sa.CheckConstraint('quantity >= 1', name='ck_cart_items_quantity_positive'),
        comment='Cart lines per user and product',
    )
    op.create_index('ix_cart_items_user_id', 'cart_items', ['user_id'])
    op.create_index('ix_cart_items_product_id', 'cart_items', ['product_id'])

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False, comment='Human-readable order number'),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='RESTRICT'),
            nullable=False,
            comment='Customer who placed the order',
        ),
        sa.Column(
            'shipping_address',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment='Shipping address snapshot',
        ),
        sa.Column(
            'status',
            sa.String(length=32),
            nullable=False,
            server_default='Pending',
            comment='Order status',
        ),
        sa.Column(
            'payment_status',
            sa.String(length=32),
            nullable=False,
            server_default='Pending',
            comment='Payment status',
        ),
        sa.Column(
            'payment_method',
            sa.String(length=32),
            nullable=False,
            server_default='COD',
            comment='Payment method',
        ),
        sa.Column(
            'total_amount',
            sa.Numeric(precision=10, scale=2),
            nullable=False,
            comment='Sum of line totals',
        ),
        sa.Column(
            'placed_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='When the order was placed',
        ),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True, comment='When the order was cancelled'),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True, comment='When the order was delivered'),
        *_timestamps(),
        sa.CheckConstraint('total_amount >= 0', name='ck_orders_total_amount_non_negative'),
        comment='Customer orders',
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_user_created', 'orders', ['user_id', 'created_at'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])

    op.create_table(
        'order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
            comment='Parent order',
        ),
        sa.Column(
            'product_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('products.id', ondelete='RESTRICT'),
            nullable=False,
            comment='Ordered product',
        ),
        sa.Column('product_name', sa.String(length=255), nullable=False, comment='Product name at placement'),
        sa.Column('quantity', sa.Integer(), nullable=False, comment='Reserved units'),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=False, comment='Price at placement'),
        sa.Column('line_total', sa.Numeric(precision=10, scale=2), nullable=False, comment='unit_price x quantity'),
        *_timestamps(),
        sa.CheckConstraint('quantity >= 1', name='ck_order_items_quantity_positive'),
        sa.CheckConstraint('unit_price >= 0', name='ck_order_items_unit_price_non_negative'),
        sa.CheckConstraint('line_total >= 0', name='ck_order_items_line_total_non_negative'),
        comment='Order line items',
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    op.create_table(
        'order_status_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
            comment='Order the change applies to',
        ),
        sa.Column('from_status', sa.String(length=32), nullable=False, comment='Status before the change'),
        sa.Column('to_status', sa.String(length=32), nullable=False, comment='Status after the change'),
        sa.Column(
            'changed_by',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'),
            nullable=True,
            comment='User who made the change',
        ),
        sa.Column('change_reason', sa.String(length=500), nullable=True, comment='Reason for the change'),
        *_timestamps(),
        comment='Audit trail of order status changes',
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])
    op.create_index(
        'ix_order_status_history_order_created',
        'order_status_history',
        ['order_id', 'created_at'],
    )


def downgrade() -> None:
    """Drop the order core tables, children first."""
    op.drop_index('ix_order_status_history_order_created', table_name='order_status_history')
    op.drop_index('ix_order_status_history_order_id', table_name='order_status_history')
    op.drop_table('order_status_history')

    op.drop_index('ix_order_items_product_id', table_name='order_items')
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')

    op.drop_index('ix_orders_payment_status', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_user_created', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_index('ix_orders_order_number', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_cart_items_product_id', table_name='cart_items')
    op.drop_index('ix_cart_items_user_id', table_name='cart_items')
    op.drop_table('cart_items')

    op.drop_index('ix_products_stock', table_name='products')
    op.drop_index('ix_products_active_deleted', table_name='products')
    op.drop_table('products')

    op.drop_index('ix_users_role_active', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
