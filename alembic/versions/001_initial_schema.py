"""Create mapping, sku cache, sync log and config tables

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-02-10

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create config table
    op.create_table(
        'config',
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )

    # Create warehouse_mappings table
    op.create_table(
        'warehouse_mappings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tiny_deposito_id', sa.String(100), nullable=False),
        sa.Column('tiny_deposito_nome', sa.String(255), nullable=True, comment='Cached for display only'),
        sa.Column('shopify_location_id', sa.String(255), nullable=False,
                  comment='Numeric id or gid://shopify/Location/<id>'),
        sa.Column('shopify_location_name', sa.String(255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_warehouse_mappings_id'), 'warehouse_mappings', ['id'], unique=False)
    op.create_index(op.f('ix_warehouse_mappings_tiny_deposito_id'), 'warehouse_mappings',
                    ['tiny_deposito_id'], unique=True)

    # Create sku_cache table
    op.create_table(
        'sku_cache',
        sa.Column('sku', sa.String(255), nullable=False),
        sa.Column('shopify_inventory_item_id', sa.String(255), nullable=False),
        sa.Column('shopify_variant_id', sa.String(255), nullable=True),
        sa.Column('product_title', sa.String(500), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('sku')
    )

    # Create sync_logs table
    op.create_table(
        'sync_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, comment='ok, skipped, error, unauthorized'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('context_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sync_logs_id'), 'sync_logs', ['id'], unique=False)
    op.create_index(op.f('ix_sync_logs_type'), 'sync_logs', ['type'], unique=False)
    op.create_index(op.f('ix_sync_logs_status'), 'sync_logs', ['status'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_sync_logs_status'), table_name='sync_logs')
    op.drop_index(op.f('ix_sync_logs_type'), table_name='sync_logs')
    op.drop_index(op.f('ix_sync_logs_id'), table_name='sync_logs')
    op.drop_table('sync_logs')

    op.drop_table('sku_cache')

    op.drop_index(op.f('ix_warehouse_mappings_tiny_deposito_id'), table_name='warehouse_mappings')
    op.drop_index(op.f('ix_warehouse_mappings_id'), table_name='warehouse_mappings')
    op.drop_table('warehouse_mappings')

    op.drop_table('config')
