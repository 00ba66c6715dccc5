"""Initial gangsheet schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tenants
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index(op.f('ix_tenants_id'), 'tenants', ['id'], unique=False)

    # Storage per tenant
    op.create_table(
        'tenant_storage_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('base_path', sa.String(length=500), nullable=False),
        sa.Column('public_base_url', sa.String(length=1000), nullable=True),
        sa.Column('credentials_encrypted', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id')
    )
    op.create_index(op.f('ix_tenant_storage_configs_id'), 'tenant_storage_configs', ['id'], unique=False)
    op.create_index(op.f('ix_tenant_storage_configs_tenant_id'), 'tenant_storage_configs', ['tenant_id'], unique=False)

    # Default sheet settings per tenant
    op.create_table(
        'tenant_gangsheet_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('roll_width_in', sa.Float(), nullable=False),
        sa.Column('roll_height_in', sa.Float(), nullable=False),
        sa.Column('dpi', sa.Integer(), nullable=False),
        sa.Column('gap_in', sa.Float(), nullable=False),
        sa.Column('border', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('border_size_in', sa.Float(), nullable=False),
        sa.Column('border_color', sa.String(length=50), nullable=False),
        sa.Column('auto_arrange', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('max_designs_per_sheet', sa.Integer(), nullable=True),
        sa.Column('background_color', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id')
    )
    op.create_index(op.f('ix_tenant_gangsheet_settings_id'), 'tenant_gangsheet_settings', ['id'], unique=False)
    op.create_index(
        op.f('ix_tenant_gangsheet_settings_tenant_id'), 'tenant_gangsheet_settings', ['tenant_id'], unique=False
    )

    # Gangsheets
    op.create_table(
        'gangsheets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='pending'),
        sa.Column('stage', sa.String(length=50), nullable=True),
        sa.Column('order_ids_json', sa.Text(), nullable=False),
        sa.Column('settings_json', sa.Text(), nullable=False),
        sa.Column('quantity_overrides_json', sa.Text(), nullable=True),
        sa.Column('sheet_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_designs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('processed_designs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('download_url', sa.String(length=2000), nullable=True),
        sa.Column('archive_key', sa.String(length=1000), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('cancel_requested', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_gangsheets_id'), 'gangsheets', ['id'], unique=False)
    op.create_index(op.f('ix_gangsheets_tenant_id'), 'gangsheets', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_gangsheets_status'), 'gangsheets', ['status'], unique=False)
    op.create_index(op.f('ix_gangsheets_created_at'), 'gangsheets', ['created_at'], unique=False)

    # Rendered sheets
    op.create_table(
        'gangsheet_sheets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('gangsheet_id', sa.Integer(), nullable=False),
        sa.Column('sheet_number', sa.Integer(), nullable=False),
        sa.Column('width_px', sa.Integer(), nullable=False),
        sa.Column('height_px', sa.Integer(), nullable=False),
        sa.Column('design_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('storage_key', sa.String(length=1000), nullable=False),
        sa.Column('file_url', sa.String(length=2000), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['gangsheet_id'], ['gangsheets.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_gangsheet_sheets_id'), 'gangsheet_sheets', ['id'], unique=False)
    op.create_index(op.f('ix_gangsheet_sheets_gangsheet_id'), 'gangsheet_sheets', ['gangsheet_id'], unique=False)


def downgrade() -> None:
    op.drop_table('gangsheet_sheets')
    op.drop_table('gangsheets')
    op.drop_table('tenant_gangsheet_settings')
    op.drop_table('tenant_storage_configs')
    op.drop_table('tenants')
