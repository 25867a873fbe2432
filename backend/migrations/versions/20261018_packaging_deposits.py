"""Reusable packaging deposits

Adds the container link and per-unit deposit to inventory_items, and the
issued/returned container tracking to sales and sale_lines.

Revision ID: bl002_packaging_deposits
Revises: bl001_initial_ledger
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'bl002_packaging_deposits'
down_revision = 'bl001_initial_ledger'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.add_column(sa.Column('is_reusable_packaging', sa.Boolean(), nullable=False, server_default=sa.false()))
        batch_op.add_column(sa.Column('packaging_item_id', sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column('packaging_deposit_cents', sa.Integer(), nullable=False, server_default='0'))
        batch_op.create_foreign_key(
            'fk_inventory_items_packaging_item_id', 'inventory_items', ['packaging_item_id'], ['id']
        )
        batch_op.create_check_constraint(
            'ck_inventory_items_deposit_non_negative', 'packaging_deposit_cents >= 0'
        )

    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.add_column(sa.Column('packaging_deposit_cents', sa.Integer(), nullable=False, server_default='0'))

    with op.batch_alter_table('sale_lines', schema=None) as batch_op:
        batch_op.add_column(sa.Column('reusable_packaging_item_id', sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column('packaging_deposit_charged_cents', sa.Integer(), nullable=False, server_default='0'))
        batch_op.add_column(sa.Column('packaging_quantity_returned', sa.Integer(), nullable=False, server_default='0'))
        batch_op.create_foreign_key(
            'fk_sale_lines_reusable_packaging_item_id', 'inventory_items', ['reusable_packaging_item_id'], ['id']
        )
        batch_op.create_check_constraint(
            'ck_sale_lines_packaging_returned_within_issued',
            'packaging_quantity_returned >= 0 AND packaging_quantity_returned <= quantity',
        )


def downgrade():
    with op.batch_alter_table('sale_lines', schema=None) as batch_op:
        batch_op.drop_constraint('ck_sale_lines_packaging_returned_within_issued', type_='check')
        batch_op.drop_constraint('fk_sale_lines_reusable_packaging_item_id', type_='foreignkey')
        batch_op.drop_column('packaging_quantity_returned')
        batch_op.drop_column('packaging_deposit_charged_cents')
        batch_op.drop_column('reusable_packaging_item_id')

    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.drop_column('packaging_deposit_cents')

    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.drop_constraint('ck_inventory_items_deposit_non_negative', type_='check')
        batch_op.drop_constraint('fk_inventory_items_packaging_item_id', type_='foreignkey')
        batch_op.drop_column('packaging_deposit_cents')
        batch_op.drop_column('packaging_item_id')
        batch_op.drop_column('is_reusable_packaging')
