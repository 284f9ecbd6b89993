"""Initial LMS schema

Revision ID: 001_lms_schema
Revises: 
Create Date: 2025-06-02

Users, customers, properties, tax assessments, audit/activity logs,
notifications, AGO sync retries and the jobs outbox.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_lms_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENTITY_STATUS = ('DRAFT', 'SUBMITTED', 'APPROVED', 'REJECTED', 'ARCHIVED')


def _workflow_columns() -> list:
    """Columns of WorkflowMixin (a fresh set per table)."""
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('reference_id', sa.String(50), unique=True, nullable=False, index=True),
        sa.Column('status', postgresql.ENUM(*ENTITY_STATUS, name='entitystatus', create_type=False), nullable=False, index=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_feedback', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    postgresql.ENUM(*ENTITY_STATUS, name='entitystatus').create(op.get_bind(), checkfirst=True)

    # === USERS ===
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('firebase_uid', sa.String(128), unique=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('role', sa.Enum('INPUTTER', 'APPROVER', 'ADMINISTRATOR', 'VIEWER', name='userrole'), nullable=False, index=True),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === CUSTOMERS ===
    op.create_table(
        'customers',
        *_workflow_columns(),
        sa.Column('customer_type', sa.Enum(
            'PERSON', 'BUSINESS', 'GOVERNMENT', 'MOSQUE_HOSPITAL', 'NON_PROFIT', 'CONTRACTOR', 'RENTAL',
            name='customertype',
        ), nullable=False, index=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('national_id', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )

    # === PROPERTIES ===
    op.create_table(
        'properties',
        *_workflow_columns(),
        sa.Column('district_code', sa.String(20), nullable=False, index=True),
        sa.Column('property_type', sa.Enum(
            'RESIDENTIAL', 'COMMERCIAL', 'MIXED_USE', 'INDUSTRIAL', 'AGRICULTURAL', 'GOVERNMENT',
            'RELIGIOUS', 'VACANT_LAND',
            name='propertytype',
        ), nullable=False),
        sa.Column('owner_customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('land_size', sa.Float(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('ago_sync_status', sa.Enum('PENDING', 'SYNCED', 'ERROR', name='agosyncstatus'), nullable=False, index=True),
        sa.Column('ago_sync_error', sa.Text(), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('global_id', sa.String(64), nullable=True),
    )

    # === TAX ASSESSMENTS ===
    op.create_table(
        'tax_assessments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('reference_id', sa.String(50), unique=True, nullable=False, index=True),
        sa.Column('property_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('tax_year', sa.Integer(), nullable=False),
        sa.Column('occupancy_type', sa.Enum('OWNER_OCCUPIED', 'RENTED', 'VACANT', 'MIXED', name='occupancytype'), nullable=False),
        sa.Column('assessed_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('property_id', 'tax_year', name='uq_tax_assessment_property_year'),
    )

    # === AUDIT LOGS (append-only) ===
    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('action', sa.Enum(
            'CREATE', 'UPDATE', 'DELETE', 'SUBMIT', 'APPROVE', 'REJECT', 'ARCHIVE', 'UNARCHIVE',
            name='auditaction',
        ), nullable=False, index=True),
        sa.Column('field', sa.String(100), nullable=True),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('changed_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False, index=True),
    )
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])

    # === ACTIVITY LOGS (append-only) ===
    op.create_table(
        'activity_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('entity_type', sa.Enum('CUSTOMER', 'PROPERTY', 'TAX_ASSESSMENT', name='entitytype'), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('action', sa.Enum(
            'CREATED', 'UPDATED', 'SUBMITTED', 'APPROVED', 'REJECTED', 'ARCHIVED', 'UNARCHIVED',
            'SYNCED', 'SYNC_FAILED',
            name='activityaction',
        ), nullable=False, index=True),
        sa.Column('performed_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
    )
    op.create_index('ix_activity_logs_entity', 'activity_logs', ['entity_type', 'entity_id'])

    # === NOTIFICATIONS ===
    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('entity_type', postgresql.ENUM(name='entitytype', create_type=False), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('link', sa.String(500), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notifications_user_created', 'notifications', ['user_id', 'created_at'])
    op.create_index('ix_notifications_user_unread', 'notifications', ['user_id', 'is_read'])

    # === AGO SYNC RETRIES ===
    op.create_table(
        'ago_sync_retries',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('property_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(), nullable=True),
        sa.Column('next_retry_at', sa.DateTime(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'RETRYING', 'SUCCESS', 'FAILED', name='syncretrystatus'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_ago_sync_retries_due', 'ago_sync_retries', ['status', 'next_retry_at'])
    op.create_index('ix_ago_sync_retries_property', 'ago_sync_retries', ['property_id', 'created_at'])

    # === JOBS OUTBOX ===
    op.create_table(
        'jobs_outbox',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('type', sa.String(100), nullable=False, index=True),
        sa.Column('payload', postgresql.JSONB(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', 'DEAD_LETTER', name='jobstatus'), nullable=False, index=True),
        sa.Column('unique_scope', sa.String(500), nullable=False, unique=True),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('run_after', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_jobs_outbox_pending', 'jobs_outbox', ['status', 'run_after'])


def downgrade() -> None:
    op.drop_table('jobs_outbox')
    op.drop_table('ago_sync_retries')
    op.drop_table('notifications')
    op.drop_table('activity_logs')
    op.drop_table('audit_logs')
    op.drop_table('tax_assessments')
    op.drop_table('properties')
    op.drop_table('customers')
    op.drop_table('users')
    for enum_name in (
        'jobstatus', 'syncretrystatus', 'activityaction', 'entitytype', 'auditaction',
        'occupancytype', 'agosyncstatus', 'propertytype', 'customertype', 'userrole', 'entitystatus',
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
