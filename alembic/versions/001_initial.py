"""Initial migration

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = sa.Enum('CUSTOMER', 'ADMIN', 'HOME_VISIT_AGENT', name='userrole')
address_kind = sa.Enum('HOME', 'WORK', 'OTHER', name='addresskind')
catalog_kind = sa.Enum('TEST', 'PACKAGE', name='catalogkind')
order_status = sa.Enum(
    'PENDING',
    'CONFIRMED',
    'SAMPLE_COLLECTION_SCHEDULED',
    'SAMPLE_COLLECTED',
    'REPORT_READY',
    'COMPLETED',
    'CANCELLED',
    name='orderstatus',
)
payment_method = sa.Enum('RAZORPAY', 'COD', name='paymentmethod')
visit_status = sa.Enum('SCHEDULED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED', name='visitstatus')
discount_type = sa.Enum('PERCENTAGE', 'FIXED', name='discounttype')


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('phone', sa.String(20), unique=True, nullable=False),
        sa.Column('email', sa.String(255), unique=True),
        sa.Column('name', sa.String(255)),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create addresses table
    op.create_table(
        'addresses',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('kind', address_kind, nullable=False),
        sa.Column('line1', sa.String(255), nullable=False),
        sa.Column('line2', sa.String(255)),
        sa.Column('landmark', sa.String(255)),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('pincode', sa.String(10), nullable=False),
        sa.Column('is_default', sa.Boolean(), default=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create categories table
    op.create_table(
        'categories',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), unique=True, nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('icon', sa.String(255)),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create lab_tests table
    op.create_table(
        'lab_tests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('category_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('categories.id')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), unique=True, nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('kind', catalog_kind, nullable=False),
        sa.Column('price_paise', sa.Integer(), nullable=False),
        sa.Column('discount_price_paise', sa.Integer()),
        sa.Column('preparation_instructions', sa.Text()),
        sa.Column('report_time', sa.String(100)),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create coupons table
    op.create_table(
        'coupons',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('code', sa.String(64), unique=True, nullable=False),
        sa.Column('description', sa.String(255)),
        sa.Column('discount_type', discount_type, nullable=False),
        sa.Column('discount_value', sa.Integer(), nullable=False),
        sa.Column('min_order_paise', sa.Integer()),
        sa.Column('max_discount_paise', sa.Integer()),
        sa.Column('usage_limit', sa.Integer()),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('valid_from', sa.DateTime()),
        sa.Column('valid_to', sa.DateTime()),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_number', sa.String(32), unique=True, nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('address_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('addresses.id'), nullable=False),
        sa.Column('status', order_status, nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_paise', sa.Integer(), nullable=False),
        sa.Column('discount_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_paise', sa.Integer(), nullable=False),
        sa.Column('coupon_code', sa.String(64)),
        sa.Column('payment_method', payment_method, nullable=False),
        sa.Column('provider_order_id', sa.String(100)),
        sa.Column('payment_id', sa.String(100)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.CheckConstraint('final_paise = total_paise - discount_paise', name='ck_orders_final_amount'),
        sa.CheckConstraint('final_paise >= 0', name='ck_orders_final_non_negative'),
    )

    # Create order_items table
    op.create_table(
        'order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('test_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('lab_tests.id'), nullable=False),
        sa.Column('test_name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_paise', sa.Integer(), nullable=False),
        sa.Column('list_price_paise', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.CheckConstraint('quantity >= 1', name='ck_order_items_quantity'),
    )

    # Create order_status_history table
    op.create_table(
        'order_status_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('status', order_status, nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create home_visits table
    op.create_table(
        'home_visits',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id'), unique=True, nullable=False),
        sa.Column('agent_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id')),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('scheduled_time', sa.String(32), nullable=False),
        sa.Column('status', visit_status, nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('collection_otp', sa.String(10)),
        sa.Column('collection_time', sa.DateTime()),
        sa.Column('notes', sa.Text()),
        sa.Column('reminder_sent', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create reports table
    op.create_table(
        'reports',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id'), unique=True, nullable=False),
        sa.Column('uploaded_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_path', sa.String(500), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('is_delivered', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('delivered_at', sa.DateTime()),
        sa.Column('uploaded_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True)),
        sa.Column('actor_type', sa.String(50)),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('resource_type', sa.String(50)),
        sa.Column('resource_id', postgresql.UUID(as_uuid=True)),
        sa.Column('data_json', postgresql.JSON()),
        sa.Column('ip_address', sa.String(50)),
        sa.Column('user_agent', sa.Text()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_addresses_user_id', 'addresses', ['user_id'])
    op.create_index('ix_lab_tests_category_id', 'lab_tests', ['category_id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])
    op.create_index('ix_home_visits_agent_id', 'home_visits', ['agent_id'])
    op.create_index('ix_home_visits_scheduled_date', 'home_visits', ['scheduled_date'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('reports')
    op.drop_table('home_visits')
    op.drop_table('order_status_history')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('coupons')
    op.drop_table('lab_tests')
    op.drop_table('categories')
    op.drop_table('addresses')
    op.drop_table('users')

    for enum in (discount_type, visit_status, payment_method, order_status, catalog_kind, address_kind, user_role):
        enum.drop(op.get_bind(), checkfirst=True)
