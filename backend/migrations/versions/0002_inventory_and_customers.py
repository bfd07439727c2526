"""inventory movements and customers

Revision ID: 0002_inventory_customers
Revises: 0001_initial_ledger
Create Date: 2026-10-19 00:00:00.000000

Adds:
- inventory_transactions: append-only stock movement audit rows
- customers: customer contact records
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_inventory_customers'
down_revision = '0001_initial_ledger'
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # inventory_transactions
    # ============================================================================
    op.create_table(
        'inventory_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('old_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('notes', sa.String(length=2000), nullable=False, server_default=''),
        sa.Column('reference', sa.String(length=64), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=False, server_default='system'),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_transactions_product_id', 'inventory_transactions', ['product_id'])
    op.create_index('ix_inventory_transactions_type', 'inventory_transactions', ['type'])
    op.create_index('ix_inventory_transactions_reference', 'inventory_transactions', ['reference'])
    op.create_index('ix_inventory_transactions_date', 'inventory_transactions', ['date'])
    op.create_index('ix_invtx_product_date', 'inventory_transactions', ['product_id', 'date'])

    # ============================================================================
    # customers
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('phone', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('whatsapp', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('address', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('city', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('postal_code', sa.String(length=16), nullable=False, server_default=''),
        sa.Column('country', sa.String(length=64), nullable=False, server_default='Indonesia'),
        sa.Column('customer_type', sa.String(length=32), nullable=False, server_default='retail'),
        sa.Column('notes', sa.String(length=2000), nullable=False, server_default=''),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_name', 'customers', ['name'])
    op.create_index('ix_customers_phone', 'customers', ['phone'])


def downgrade():
    op.drop_table('customers')
    op.drop_table('inventory_transactions')
