"""Initial membership schema

Revision ID: 3c1f9a2d7b10
Revises:
Create Date: 2025-09-02 10:12:41.318204
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f9a2d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _applicant_columns():
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('applicant_id', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_verified_at', sa.DateTime(), nullable=True),
        sa.Column('verification_token', sa.String(length=64), nullable=True),
        sa.Column('verification_token_expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
    ]


def _application_columns(applicant_table):
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('application_id', sa.String(length=20), nullable=False),
        sa.Column('applicant_pk', sa.Uuid(), sa.ForeignKey(f'{applicant_table}.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('schema_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('fee_amount', sa.Float(), nullable=True),
        sa.Column('fee_currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('fee_status', sa.String(length=20), nullable=False, server_default='unpaid'),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('payment_reference', sa.String(length=100), nullable=True),
        sa.Column('reviewed_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_member_number', sa.String(length=20), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('payment_recorded_at', sa.DateTime(), nullable=True),
        sa.Column('payment_received_at', sa.DateTime(), nullable=True),
        sa.Column('review_started_at', sa.DateTime(), nullable=True),
        sa.Column('document_review_started_at', sa.DateTime(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=30), nullable=False, server_default='staff'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'naming_series_counters',
        sa.Column('series_code', sa.String(length=50), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('counter', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('series_code', 'year', name='pk_naming_series_counters'),
    )

    op.create_table(
        'applicants',
        *_applicant_columns(),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('middle_name', sa.String(length=100), nullable=True),
        sa.Column('surname', sa.String(length=100), nullable=False),
    )
    op.create_table(
        'organization_applicants',
        *_applicant_columns(),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=200), nullable=False),
    )
    for table in ('applicants', 'organization_applicants'):
        op.create_index(f'ix_{table}_applicant_id', table, ['applicant_id'], unique=True)
        op.create_index(f'ix_{table}_verification_token', table, ['verification_token'])

    op.create_table(
        'individual_applications',
        *_application_columns('applicants'),
        sa.Column('personal', sa.JSON(), nullable=True),
        sa.Column('o_level', sa.JSON(), nullable=True),
        sa.Column('a_level', sa.JSON(), nullable=True),
        sa.Column('equivalent_qualification', sa.JSON(), nullable=True),
        sa.Column('mature_entry', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_table(
        'organization_applications',
        *_application_columns('organization_applicants'),
        sa.Column('company', sa.JSON(), nullable=True),
        sa.Column('contact_person', sa.JSON(), nullable=True),
        sa.Column('trust_account', sa.JSON(), nullable=True),
        sa.Column('directors', sa.JSON(), nullable=True),
    )
    for table in ('individual_applications', 'organization_applications'):
        op.create_index(f'ix_{table}_application_id', table, ['application_id'], unique=True)
        op.create_index(f'ix_{table}_status', table, ['status'])

    op.create_table(
        'status_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('application_type', sa.String(length=20), nullable=False),
        sa.Column('application_id', sa.String(length=20), nullable=False),
        sa.Column('from_status', sa.String(length=30), nullable=True),
        sa.Column('to_status', sa.String(length=30), nullable=False),
        sa.Column('changed_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_status_history_application_id', 'status_history', ['application_id'])

    op.create_table(
        'uploaded_documents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('application_type', sa.String(length=20), nullable=False),
        sa.Column('application_id', sa.String(length=20), nullable=False),
        sa.Column('doc_type', sa.String(length=50), nullable=False),
        sa.Column('file_key', sa.String(length=500), nullable=False, unique=True),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('sha256', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='uploaded'),
        sa.Column('verified_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_uploaded_documents_application_id', 'uploaded_documents', ['application_id'])
    op.create_index('ix_uploaded_documents_sha256', 'uploaded_documents', ['sha256'], unique=True)

    op.create_table(
        'members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('membership_number', sa.String(length=20), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('member_type', sa.String(length=30), nullable=False, server_default='individual'),
        sa.Column('membership_status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('application_id', sa.String(length=20), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_members_membership_number', 'members', ['membership_number'], unique=True)

    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('registration_number', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('physical_address', sa.Text(), nullable=True),
        sa.Column('membership_status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('application_id', sa.String(length=20), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_organizations_registration_number', 'organizations', ['registration_number'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('organizations')
    op.drop_table('members')
    op.drop_table('uploaded_documents')
    op.drop_table('status_history')
    op.drop_table('organization_applications')
    op.drop_table('individual_applications')
    op.drop_table('organization_applicants')
    op.drop_table('applicants')
    op.drop_table('naming_series_counters')
    op.drop_table('users')
