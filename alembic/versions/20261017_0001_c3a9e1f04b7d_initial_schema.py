"""initial schema: users, OTPs, token revocations, shop ledger, notifications, audit

Revision ID: c3a9e1f04b7d
Revises:
Create Date: 2026-10-17

Tables:
  users            accounts (email unique, role, verification flag)
  user_otps        one live hashed OTP per email
  revoked_tokens   logout registry keyed by JWT jti, shared by all workers
  products         catalogue with stock / sold counters (non-negative checks)
  sales            append-only ledger; product_id SET NULL so history survives deletes
  notifications    per-user in-app notifications (admin broadcasts)
  audit_logs       insert-only trail of privileged actions
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = 'c3a9e1f04b7d'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*names):
    return [
        sa.Column(name, sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now())
        for name in names
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column(
            'role',
            sa.Enum('admin', 'controller', 'client', name='user_role'),
            nullable=False,
            server_default='client',
        ),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps('created_at', 'updated_at'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'user_otps',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('otp_hash', sa.String(), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps('created_at'),
    )
    op.create_index('ix_user_otps_email', 'user_otps', ['email'], unique=True)

    op.create_table(
        'revoked_tokens',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('jti', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        *_timestamps('revoked_at'),
    )
    op.create_index('ix_revoked_tokens_jti', 'revoked_tokens', ['jti'], unique=True)
    op.create_index('ix_revoked_tokens_expires_at', 'revoked_tokens', ['expires_at'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('image_url', sa.String(500), nullable=True),
        *_timestamps('created_at', 'updated_at'),
        sa.CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('sold_quantity >= 0', name='ck_products_sold_non_negative'),
    )
    op.create_index('ix_products_category', 'products', ['category'])

    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('customer_name', sa.String(200), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('customer_phone', sa.String(30), nullable=True),
        sa.Column('is_reversed', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps('sale_date', 'created_at', 'updated_at'),
        sa.CheckConstraint('quantity > 0', name='ck_sales_quantity_positive'),
    )
    op.create_index('ix_sales_product_id', 'sales', ['product_id'])
    op.create_index('ix_sales_is_reversed', 'sales', ['is_reversed'])
    op.create_index('ix_sales_sale_date', 'sales', ['sale_date'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps('created_at'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('admin_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=True),
        sa.Column('target_id', sa.String(100), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        *_timestamps('created_at'),
    )
    op.create_index('ix_audit_logs_admin_id', 'audit_logs', ['admin_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_target_id', 'audit_logs', ['target_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('notifications')
    op.drop_table('sales')
    op.drop_table('products')
    op.drop_table('revoked_tokens')
    op.drop_table('user_otps')
    op.drop_table('users')
    # Postgres keeps the enum type around after the table is gone
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
