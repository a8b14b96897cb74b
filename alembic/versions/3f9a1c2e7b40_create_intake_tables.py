"""Create intake, record, media and activity tables

Revision ID: 3f9a1c2e7b40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f9a1c2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True) -> List[sa.Column]:
    columns = [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]
    if with_updated:
        columns.append(
            sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False)
        )
    return columns


def _record_columns() -> List[sa.Column]:
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('source', sa.String(), server_default='', nullable=False),
        sa.Column('status', sa.String(), server_default='active', nullable=False, comment='active | needs_review'),
        sa.Column('completeness_score', sa.Numeric(5, 2), server_default='0', nullable=False),
        sa.Column('notes', sa.Text(), server_default='', nullable=False),
        sa.Column('intake_session_id', sa.UUID(), nullable=True),
        sa.Column('contact_id', sa.UUID(), nullable=True),
    ]


def _record_constraints(table: str) -> List[sa.Constraint]:
    return [
        sa.ForeignKeyConstraint(['intake_session_id'], ['intake_sessions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name=f'uq_{table}_code'),
    ]


def _listing_columns() -> List[sa.Column]:
    return [
        sa.Column('property_type', sa.String(), server_default='', nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=True),
        sa.Column('currency', sa.String(), server_default='egp', nullable=False),
        sa.Column('size_sqm', sa.Integer(), nullable=True),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('bathrooms', sa.Integer(), nullable=True),
        sa.Column('area', sa.String(), server_default='', nullable=False),
        sa.Column('compound', sa.String(), server_default='', nullable=False),
        sa.Column('floor', sa.Integer(), nullable=True),
        sa.Column('furnished', sa.String(), server_default='unknown', nullable=False),
        sa.Column('finishing', sa.String(), server_default='', nullable=False),
        sa.Column('payment_terms', sa.String(), server_default='', nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table('intake_sessions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('parent_session_id', sa.UUID(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('raw_text', sa.Text(), nullable=False),
        sa.Column('type_detected', sa.String(), server_default='', nullable=False),
        sa.Column('type_confirmed', sa.String(), server_default='', nullable=False),
        sa.Column('ai_json', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        sa.Column('ai_meta', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        sa.Column('completeness_score', sa.Numeric(5, 2), server_default='0', nullable=False),
        sa.Column('status', sa.String(), server_default='draft', nullable=False, comment='draft | needs_review | confirmed'),
        sa.Column('final_record_type', sa.String(), nullable=True),
        sa.Column('final_record_id', sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_session_id'], ['intake_sessions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_intake_sessions_parent_session_id'), 'intake_sessions', ['parent_session_id'], unique=False)

    op.create_table('contacts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(), server_default='', nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone', name='uq_contacts_phone')
    )

    op.create_table('properties_sale',
        *_record_columns(),
        *_listing_columns(),
        *_timestamps(),
        *_record_constraints('properties_sale')
    )

    op.create_table('properties_rent',
        *_record_columns(),
        *_listing_columns(),
        sa.Column('rent_period', sa.String(), server_default='', nullable=False),
        *_timestamps(),
        *_record_constraints('properties_rent')
    )

    op.create_table('buyers',
        *_record_columns(),
        sa.Column('intent', sa.String(), server_default='', nullable=False),
        sa.Column('budget_min', sa.BigInteger(), nullable=True),
        sa.Column('budget_max', sa.BigInteger(), nullable=True),
        sa.Column('currency', sa.String(), server_default='egp', nullable=False),
        sa.Column('preferred_areas', postgresql.ARRAY(sa.String()), server_default='{}', nullable=False),
        sa.Column('property_type', sa.String(), server_default='', nullable=False),
        sa.Column('bedrooms_needed', sa.Integer(), nullable=True),
        sa.Column('timeline', sa.String(), server_default='', nullable=False),
        *_timestamps(),
        *_record_constraints('buyers')
    )

    op.create_table('clients',
        *_record_columns(),
        sa.Column('name', sa.String(), server_default='', nullable=False),
        sa.Column('phone', sa.String(), server_default='', nullable=False),
        sa.Column('role', sa.String(), server_default='owner', nullable=False),
        sa.Column('area', sa.String(), server_default='', nullable=False),
        sa.Column('tags', postgresql.ARRAY(sa.String()), server_default='{}', nullable=False),
        *_timestamps(),
        *_record_constraints('clients')
    )

    op.create_table('media',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('intake_session_id', sa.UUID(), nullable=True),
        sa.Column('record_type', sa.String(), nullable=True),
        sa.Column('record_id', sa.UUID(), nullable=True),
        sa.Column('file_url', sa.Text(), nullable=False),
        sa.Column('storage_path', sa.Text(), server_default='', nullable=False),
        sa.Column('mime_type', sa.String(), server_default='', nullable=False),
        sa.Column('media_type', sa.String(), server_default='other', nullable=False, comment='image | video | document | other'),
        sa.Column('original_filename', sa.String(), server_default='', nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(['intake_session_id'], ['intake_sessions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_media_dedupe_intake',
        'media',
        ['intake_session_id', 'original_filename', 'file_size'],
        unique=True,
        postgresql_where=sa.text('intake_session_id IS NOT NULL'),
    )

    op.create_table('crm_code_sequences',
        sa.Column('code_key', sa.String(), nullable=False),
        sa.Column('year_num', sa.Integer(), nullable=False),
        sa.Column('last_value', sa.Integer(), server_default='0', nullable=False),
        sa.PrimaryKeyConstraint('code_key', 'year_num')
    )

    op.create_table('timeline',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('record_type', sa.String(), nullable=False),
        sa.Column('record_id', sa.UUID(), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('details', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_timeline_record', 'timeline', ['record_type', 'record_id'], unique=False)

    op.create_table('audit_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('record_type', sa.String(), nullable=False),
        sa.Column('record_id', sa.UUID(), nullable=False),
        sa.Column('before_json', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        sa.Column('after_json', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        sa.Column('source', sa.String(), server_default='app', nullable=False),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_audit_logs_record', 'audit_logs', ['record_type', 'record_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_audit_logs_record', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('idx_timeline_record', table_name='timeline')
    op.drop_table('timeline')
    op.drop_table('crm_code_sequences')
    op.drop_index('idx_media_dedupe_intake', table_name='media')
    op.drop_table('media')
    op.drop_table('clients')
    op.drop_table('buyers')
    op.drop_table('properties_rent')
    op.drop_table('properties_sale')
    op.drop_table('contacts')
    op.drop_index(op.f('ix_intake_sessions_parent_session_id'), table_name='intake_sessions')
    op.drop_table('intake_sessions')
