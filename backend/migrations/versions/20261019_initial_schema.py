"""Initial schema: accounts, sessions, subscriptions, books, clients, sales

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. users, session_tokens, otps (accounts and authentication)
2. subscriptions (plan purchases and transitions)
3. books, clients (per-user ledgers and trading parties)
4. sales, products (invoices and their line items)
5. goods_returns, goods_return_products (returns against a sale)
6. sale_payments, sale_commissions (money received)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _amounts():
    return [
        sa.Column('gross_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('net_amount', sa.Float(), nullable=False, server_default='0'),
    ]


def upgrade():
    # ==========================================================================
    # 1. ACCOUNTS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index(batch_op.f('ix_session_tokens_expires_at'), ['expires_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_is_revoked'), ['is_revoked'], unique=False)
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)

    op.create_table('otps',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('otp', sa.String(length=6), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('purpose', sa.String(length=32), nullable=False, server_default='SIGNUP'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('otps', schema=None) as batch_op:
        batch_op.create_index('ix_otps_email_purpose', ['email', 'purpose'], unique=False)

    # ==========================================================================
    # 2. SUBSCRIPTIONS
    # ==========================================================================
    op.create_table('subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('plan_name', sa.String(length=32), nullable=False),
        sa.Column('plan_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('subscriptions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_subscriptions_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_subscriptions_status'), ['status'], unique=False)
        batch_op.create_index('ix_subscriptions_user_status', ['user_id', 'status', 'created_at'], unique=False)

    # ==========================================================================
    # 3. BOOKS AND CLIENTS
    # ==========================================================================
    op.create_table('books',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('opening_balance', sa.Float(), nullable=True),
        sa.Column('closing_balance', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('books', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_books_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_books_user_name', ['user_id', 'name'], unique=False)

    op.create_table('clients',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('pan', sa.String(length=16), nullable=True),
        sa.Column('gstin', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('clients', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_clients_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_clients_user_phone_pan', ['user_id', 'phone', 'pan'], unique=False)

    # ==========================================================================
    # 4. SALES AND PRODUCTS
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('book_id', sa.String(length=36), nullable=False),
        sa.Column('seller_id', sa.String(length=36), nullable=False),
        sa.Column('buyer_id', sa.String(length=36), nullable=False),
        sa.Column('lorry_receipt_number', sa.String(length=64), nullable=True),
        sa.Column('lorry_receipt_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('case_number', sa.String(length=64), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('freight', sa.Float(), nullable=True),
        sa.Column('transport_name', sa.String(length=255), nullable=True),
        sa.Column('transport_number', sa.String(length=64), nullable=True),
        sa.Column('transport_station', sa.String(length=255), nullable=True),
        sa.Column('e_way_bill_number', sa.String(length=64), nullable=True),
        sa.Column('e_way_bill_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('challan_number', sa.String(length=64), nullable=True),
        sa.Column('challan_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('invoice_number', sa.String(length=64), nullable=True),
        sa.Column('invoice_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('invoice_gross_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('invoice_discount_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('invoice_tax_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('invoice_net_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('commission_rate', sa.Float(), nullable=True),
        sa.Column('invoice_due_days', sa.Integer(), nullable=False, server_default='45'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ),
        sa.ForeignKeyConstraint(['seller_id'], ['clients.id'], ),
        sa.ForeignKeyConstraint(['buyer_id'], ['clients.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_book_id'), ['book_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_seller_id'), ['seller_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_buyer_id'), ['buyer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_status'), ['status'], unique=False)
        batch_op.create_index('ix_sales_book_invoice_date', ['book_id', 'invoice_date'], unique=False)
        batch_op.create_index('ix_sales_invoice_number', ['invoice_number'], unique=False)

    op.create_table('products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('unit', sa.String(length=32), nullable=False, server_default='Nos'),
        sa.Column('rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('gst_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discount_rate', sa.Float(), nullable=False, server_default='0'),
        *_amounts(),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_sale_id'), ['sale_id'], unique=False)

    # ==========================================================================
    # 5. GOODS RETURNS
    # ==========================================================================
    op.create_table('goods_returns',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        *_amounts(),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('goods_returns', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_goods_returns_sale_id'), ['sale_id'], unique=False)

    op.create_table('goods_return_products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('goods_return_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        *_amounts(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['goods_return_id'], ['goods_returns.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('goods_return_products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_goods_return_products_goods_return_id'), ['goods_return_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_goods_return_products_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 6. PAYMENTS AND COMMISSIONS
    # ==========================================================================
    op.create_table('sale_payments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference_number', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sale_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_payments_sale_id'), ['sale_id'], unique=False)

    op.create_table('sale_commissions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_payment_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference_number', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['sale_payment_id'], ['sale_payments.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sale_commissions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_commissions_sale_payment_id'), ['sale_payment_id'], unique=False)


def downgrade():
    op.drop_table('sale_commissions')
    op.drop_table('sale_payments')
    op.drop_table('goods_return_products')
    op.drop_table('goods_returns')
    op.drop_table('products')
    op.drop_table('sales')
    op.drop_table('clients')
    op.drop_table('books')
    op.drop_table('subscriptions')
    op.drop_table('otps')
    op.drop_table('session_tokens')
    op.drop_table('users')
