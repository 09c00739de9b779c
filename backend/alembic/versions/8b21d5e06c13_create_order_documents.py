"""Create inbound and outbound order documents

Revision ID: 8b21d5e06c13
Revises: 3f9c2a1b7d40
Create Date: 2026-10-19 15:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers used by Alembic
revision: str = '8b21d5e06c13'
down_revision: Union[str, Sequence[str], None] = '3f9c2a1b7d40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Supplier deliveries
    op.create_table(
        'inbound_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('supplier_name', sa.String(), nullable=False),
        sa.Column('expected_date', sa.Date(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'RECEIVING', 'COMPLETED', 'CANCELLED', name='inboundorderstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_inbound_orders_id'), 'inbound_orders', ['id'], unique=False)
    op.create_index(op.f('ix_inbound_orders_order_number'), 'inbound_orders', ['order_number'], unique=True)

    op.create_table(
        'inbound_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inbound_order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('expected_quantity', sa.Integer(), nullable=False),
        sa.Column('received_quantity', sa.Integer(), nullable=False),
        sa.Column('lot_number', sa.String(), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.CheckConstraint('expected_quantity > 0', name='ck_inbound_item_expected_positive'),
        sa.CheckConstraint('received_quantity >= 0', name='ck_inbound_item_received_non_negative'),
        sa.ForeignKeyConstraint(['inbound_order_id'], ['inbound_orders.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_inbound_order_items_id'), 'inbound_order_items', ['id'], unique=False)
    op.create_index(op.f('ix_inbound_order_items_inbound_order_id'), 'inbound_order_items', ['inbound_order_id'], unique=False)

    # Customer shipments
    op.create_table(
        'outbound_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('ship_date', sa.Date(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'PICKING', 'PACKING', 'SHIPPED', 'CANCELLED', name='outboundorderstatus'), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.CheckConstraint('priority BETWEEN 1 AND 5', name='ck_outbound_priority_range'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_outbound_orders_id'), 'outbound_orders', ['id'], unique=False)
    op.create_index(op.f('ix_outbound_orders_order_number'), 'outbound_orders', ['order_number'], unique=True)

    op.create_table(
        'outbound_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('outbound_order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('requested_quantity', sa.Integer(), nullable=False),
        sa.Column('allocated_quantity', sa.Integer(), nullable=False),
        sa.Column('picked_quantity', sa.Integer(), nullable=False),
        sa.Column('shipped_quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('requested_quantity > 0', name='ck_outbound_item_requested_positive'),
        sa.CheckConstraint('picked_quantity <= requested_quantity', name='ck_outbound_item_no_overpick'),
        sa.ForeignKeyConstraint(['outbound_order_id'], ['outbound_orders.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_outbound_order_items_id'), 'outbound_order_items', ['id'], unique=False)
    op.create_index(op.f('ix_outbound_order_items_outbound_order_id'), 'outbound_order_items', ['outbound_order_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('outbound_order_items')
    op.drop_table('outbound_orders')
    op.drop_table('inbound_order_items')
    op.drop_table('inbound_orders')
    sa.Enum(name='outboundorderstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='inboundorderstatus').drop(op.get_bind(), checkfirst=True)
