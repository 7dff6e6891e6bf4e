"""create_property_import_tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 10:12:41.508213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Create properties table
    op.create_table('properties',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=10000), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('neighborhood', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=1000), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('bedrooms', sa.Integer(), nullable=False),
        sa.Column('bathrooms', sa.Integer(), nullable=False),
        sa.Column('max_guests', sa.Integer(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('base_price', sa.Float(), nullable=False),
        sa.Column('cleaning_fee', sa.Float(), nullable=False),
        sa.Column('price_per_extra_guest', sa.Float(), nullable=False),
        sa.Column('minimum_nights', sa.Integer(), nullable=False),
        sa.Column('advance_payment_percentage', sa.Float(), nullable=False),
        sa.Column('weekend_surcharge', sa.Float(), nullable=False),
        sa.Column('holiday_surcharge', sa.Float(), nullable=False),
        sa.Column('december_surcharge', sa.Float(), nullable=False),
        sa.Column('high_season_surcharge', sa.Float(), nullable=False),
        sa.Column('high_season_months', sa.JSON(), nullable=True),
        sa.Column('payment_method_surcharges', sa.JSON(), nullable=True),
        sa.Column('amenities', sa.JSON(), nullable=True),
        sa.Column('photos', sa.JSON(), nullable=True),
        sa.Column('videos', sa.JSON(), nullable=True),
        sa.Column('allows_pets', sa.Boolean(), nullable=False),
        sa.Column('is_featured', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('external_id', sa.String(length=100), nullable=True),
        sa.Column('external_source', sa.String(length=50), nullable=True),
        sa.Column('dedupe_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_properties_tenant_id'), 'properties', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_properties_external_id'), 'properties', ['external_id'], unique=False)
    op.create_index(op.f('ix_properties_dedupe_hash'), 'properties', ['dedupe_hash'], unique=False)

    # Create import_jobs table
    op.create_table('import_jobs',
        sa.Column('job_id', sa.String(length=50), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('active_tenant_id', sa.String(length=64), nullable=True),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('stage', sa.String(length=20), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('completed_count', sa.Integer(), nullable=False),
        sa.Column('failed_count', sa.Integer(), nullable=False),
        sa.Column('current_entry_label', sa.String(length=255), nullable=True),
        sa.Column('errors_json', sa.JSON(), nullable=True),
        sa.Column('payload_json', sa.JSON(), nullable=True),
        sa.Column('result_json', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('job_id'),
        sa.UniqueConstraint('active_tenant_id')
    )
    op.create_index(op.f('ix_import_jobs_tenant_id'), 'import_jobs', ['tenant_id'], unique=False)

    # Create calendar_sync_configs table
    op.create_table('calendar_sync_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('ical_url', sa.String(length=2000), nullable=False),
        sa.Column('sync_frequency', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('error_count', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.String(length=1000), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_calendar_sync_configs_property_id'), 'calendar_sync_configs', ['property_id'], unique=False)
    op.create_index(op.f('ix_calendar_sync_configs_tenant_id'), 'calendar_sync_configs', ['tenant_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_calendar_sync_configs_tenant_id'), table_name='calendar_sync_configs')
    op.drop_index(op.f('ix_calendar_sync_configs_property_id'), table_name='calendar_sync_configs')
    op.drop_table('calendar_sync_configs')
    op.drop_index(op.f('ix_import_jobs_tenant_id'), table_name='import_jobs')
    op.drop_table('import_jobs')
    op.drop_index(op.f('ix_properties_dedupe_hash'), table_name='properties')
    op.drop_index(op.f('ix_properties_external_id'), table_name='properties')
    op.drop_index(op.f('ix_properties_tenant_id'), table_name='properties')
    op.drop_table('properties')
