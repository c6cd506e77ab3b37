"""Baseline migration - owners, forms, submissions and sync errors

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Portable DDL (PostgreSQL in production, SQLite for local dev).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create intake tables."""

    # ==========================================================================
    # Users (form owners)
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('airtable_user_id', sa.String(100), nullable=False, unique=True),
        sa.Column('airtable_access_token_encrypted', sa.Text(), nullable=True),
        sa.Column('airtable_refresh_token_encrypted', sa.Text(), nullable=True),
        sa.Column('airtable_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    # ==========================================================================
    # Forms
    # ==========================================================================
    op.create_table(
        'forms',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('airtable_base_id', sa.String(100), nullable=False),
        sa.Column('airtable_base_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('airtable_table_id', sa.String(100), nullable=False),
        sa.Column('airtable_table_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('schema_json', JSON_TYPE, nullable=False),
        sa.Column('settings_json', JSON_TYPE, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_views', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('total_submissions', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_forms_owner_created', 'forms', ['owner_id', 'created_at'])
    op.create_index('idx_forms_active_published', 'forms', ['is_active', 'is_published'])
    op.create_index('idx_forms_airtable_table', 'forms', ['airtable_base_id', 'airtable_table_id'])

    # ==========================================================================
    # Form submissions
    # ==========================================================================
    op.create_table(
        'form_submissions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('form_id', sa.Uuid(), sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('airtable_base_id', sa.String(100), nullable=False),
        sa.Column('airtable_table_id', sa.String(100), nullable=False),
        sa.Column('airtable_record_id', sa.String(100), nullable=True),
        sa.Column('responses_json', JSON_TYPE, nullable=False),
        sa.Column('submitter_ip', sa.String(64), nullable=True),
        sa.Column('submitter_user_agent', sa.Text(), nullable=True),
        sa.Column('submitter_referrer', sa.Text(), nullable=True),
        sa.Column('submitter_email', sa.String(255), nullable=True),
        sa.Column('submitter_name', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column('last_sync_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sync_attempts', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('last_sync_error', sa.Text(), nullable=True),
        sa.Column('is_synced', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('time_to_complete', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('device_type', sa.String(20), nullable=True),
        sa.Column('browser_info', sa.Text(), nullable=True),
        sa.Column('completion_percentage', sa.Float(), nullable=False, server_default=sa.text('100')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_form_submissions_form_created', 'form_submissions', ['form_id', 'created_at'])
    op.create_index('idx_form_submissions_status', 'form_submissions', ['status'])
    op.create_index('idx_form_submissions_synced', 'form_submissions', ['is_synced'])
    op.create_index('idx_form_submissions_record', 'form_submissions', ['airtable_record_id'])
    op.create_index('idx_form_submissions_email', 'form_submissions', ['submitter_email'])

    # ==========================================================================
    # Sync error log (append-only)
    # ==========================================================================
    op.create_table(
        'form_submission_errors',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'submission_id',
            sa.Uuid(),
            sa.ForeignKey('form_submissions.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('details', JSON_TYPE, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_form_submission_errors_submission', 'form_submission_errors', ['submission_id'])


def downgrade() -> None:
    """Drop intake tables."""
    op.drop_table('form_submission_errors')
    op.drop_table('form_submissions')
    op.drop_table('forms')
    op.drop_table('users')
