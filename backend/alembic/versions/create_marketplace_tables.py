"""Create marketplace tables: profiles, catalog, requests, bids, carts and orders

Revision ID: create_marketplace_tables
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = 'create_marketplace_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade():
    op.create_table('user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('company_name', sa.String(length=200), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('is_verified', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('role', sa.String(length=50), server_default='buyer', nullable=False),
        *_timestamps(),
        sa.CheckConstraint("role IN ('buyer', 'supplier', 'admin')", name='user_profiles_role_check'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table('products',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_name', sa.String(length=200), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('images', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('original_price', sa.Float(), nullable=True),
        sa.Column('unit', sa.String(length=50), server_default='pieces', nullable=False),
        sa.Column('moq', sa.Integer(), server_default='1', nullable=False),
        sa.Column('max_order_quantity', sa.Integer(), nullable=True),
        sa.Column('available', sa.Integer(), server_default='0', nullable=False),
        sa.Column('sold', sa.Integer(), server_default='0', nullable=False),
        sa.Column('options', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('variants', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='active', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('price >= 0', name='products_price_check'),
        sa.CheckConstraint('available >= 0', name='products_available_check'),
        sa.CheckConstraint('moq >= 1', name='products_moq_check'),
        sa.CheckConstraint("status IN ('active', 'inactive', 'draft', 'outofstock')", name='products_status_check'),
        sa.ForeignKeyConstraint(['supplier_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_products_supplier_id', 'products', ['supplier_id'])
    op.create_index('ix_products_category', 'products', ['category'])

    op.create_table('price_tiers',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('min_quantity', sa.Integer(), nullable=False),
        sa.Column('max_quantity', sa.Integer(), nullable=True),
        sa.Column('price_per_unit', sa.Float(), nullable=False),
        sa.Column('label', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('min_quantity > 0', name='price_tiers_min_quantity_check'),
        sa.CheckConstraint('price_per_unit >= 0', name='price_tiers_price_check'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'min_quantity', name='unique_product_min_quantity')
    )

    op.create_table('sourcing_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('request_number', sa.String(length=40), nullable=False),
        sa.Column('buyer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('buyer_name', sa.String(length=200), nullable=True),
        sa.Column('buyer_email', sa.String(length=255), nullable=True),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit', sa.String(length=50), server_default='pieces', nullable=False),
        sa.Column('target_price', sa.Float(), nullable=False),
        sa.Column('max_budget', sa.Float(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('specifications', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('preferred_brands', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('contact_method', sa.String(length=50), nullable=True),
        sa.Column('urgency', sa.String(length=20), server_default='medium', nullable=False),
        sa.Column('priority', sa.String(length=20), server_default='low', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='open', nullable=False),
        sa.Column('bid_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('view_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('accepted_bid_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('quantity >= 1', name='sourcing_requests_quantity_check'),
        sa.CheckConstraint('bid_count >= 0', name='sourcing_requests_bid_count_check'),
        sa.CheckConstraint("status IN ('open', 'closed', 'fulfilled')", name='sourcing_requests_status_check'),
        sa.ForeignKeyConstraint(['buyer_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_number')
    )
    op.create_index('ix_sourcing_requests_buyer_id', 'sourcing_requests', ['buyer_id'])
    op.create_index('ix_sourcing_requests_status_created', 'sourcing_requests', ['status', 'created_at'])

    op.create_table('bids',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('request_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_name', sa.String(length=200), nullable=True),
        sa.Column('product_name', sa.String(length=200), nullable=True),
        sa.Column('original_price', sa.Float(), nullable=False),
        sa.Column('bid_price', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('delivery_time', sa.Integer(), nullable=False),
        sa.Column('message', sa.String(length=500), server_default='', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('withdrawn_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('bid_price >= 0', name='bids_bid_price_check'),
        sa.CheckConstraint('quantity >= 1', name='bids_quantity_check'),
        sa.CheckConstraint('delivery_time BETWEEN 1 AND 365', name='bids_delivery_time_check'),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'rejected', 'withdrawn')", name='bids_status_check'),
        sa.ForeignKeyConstraint(['request_id'], ['sourcing_requests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_id', 'supplier_id', name='unique_bid_per_request_supplier')
    )
    op.create_index('ix_bids_request_status', 'bids', ['request_id', 'status'])

    op.create_table('carts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table('cart_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('cart_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('item_type', sa.String(length=20), server_default='regular', nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('product_image', sa.String(length=500), nullable=True),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_name', sa.String(length=200), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('is_bulk_order', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('min_order_quantity', sa.Integer(), server_default='1', nullable=False),
        sa.Column('max_order_quantity', sa.Integer(), nullable=True),
        sa.Column('bulk_discount', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('variant_id', sa.String(length=50), nullable=True),
        sa.Column('variant_name', sa.String(length=200), nullable=True),
        sa.Column('color', sa.String(length=100), nullable=True),
        sa.Column('size', sa.String(length=100), nullable=True),
        sa.Column('material', sa.String(length=100), nullable=True),
        sa.Column('style', sa.String(length=100), nullable=True),
        sa.Column('variation_attributes', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('request_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('bid_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('original_price', sa.Float(), nullable=True),
        sa.Column('discount_percent', sa.Integer(), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='cart_items_quantity_check'),
        sa.CheckConstraint("item_type IN ('regular', 'bid')", name='cart_items_item_type_check'),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bid_id', name='unique_cart_item_bid')
    )
    op.create_index('ix_cart_items_cart_product', 'cart_items', ['cart_id', 'product_id'])

    op.create_table('orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_number', sa.String(length=40), nullable=False),
        sa.Column('buyer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('buyer_name', sa.String(length=200), nullable=True),
        sa.Column('buyer_email', sa.String(length=255), nullable=True),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_name', sa.String(length=200), nullable=True),
        sa.Column('supplier_email', sa.String(length=255), nullable=True),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('payment_status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('shipping_address', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('shipping_method', sa.String(length=100), nullable=False),
        sa.Column('estimated_delivery', sa.String(length=100), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('total_amount >= 0', name='orders_total_amount_check'),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'processing', 'shipped', 'delivered', 'cancelled')",
            name='orders_status_check'
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name='orders_payment_status_check'
        ),
        sa.ForeignKeyConstraint(['buyer_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number')
    )
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_supplier_id', 'orders', ['supplier_id'])

    op.create_table('order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('product_image', sa.String(length=500), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('variant_id', sa.String(length=50), nullable=True),
        sa.Column('variant_name', sa.String(length=200), nullable=True),
        sa.Column('color', sa.String(length=100), nullable=True),
        sa.Column('size', sa.String(length=100), nullable=True),
        sa.Column('material', sa.String(length=100), nullable=True),
        sa.Column('style', sa.String(length=100), nullable=True),
        sa.Column('variation_attributes', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('specifications', sa.String(length=200), nullable=True),
        sa.Column('bid_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('request_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='order_items_quantity_check'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade():
    op.drop_table('order_items')
    op.drop_index('ix_orders_supplier_id', table_name='orders')
    op.drop_index('ix_orders_buyer_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_cart_items_cart_product', table_name='cart_items')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_index('ix_bids_request_status', table_name='bids')
    op.drop_table('bids')
    op.drop_index('ix_sourcing_requests_status_created', table_name='sourcing_requests')
    op.drop_index('ix_sourcing_requests_buyer_id', table_name='sourcing_requests')
    op.drop_table('sourcing_requests')
    op.drop_table('price_tiers')
    op.drop_index('ix_products_category', table_name='products')
    op.drop_index('ix_products_supplier_id', table_name='products')
    op.drop_table('products')
    op.drop_table('user_profiles')
