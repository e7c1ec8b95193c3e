"""Initial schema - principals, resources, content references, audit log

Revision ID: 0001
Revises: 
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Principals table
    op.create_table(
        'principals',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('identity', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('secret_hash', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(32), nullable=False),
        sa.Column('organization', sa.String(255), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('contact', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Resources table
    op.create_table(
        'resources',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('principals.id'), nullable=False, index=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('attributes', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, default='draft', index=True),
        sa.Column('version', sa.Integer(), nullable=False, default=1),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Content references table (append-only)
    op.create_table(
        'content_references',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('resource_id', sa.Uuid(), sa.ForeignKey('resources.id'), nullable=False, index=True),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(32), nullable=False),
        sa.Column('content_id', sa.String(255), nullable=False),
        sa.Column('attached_by', sa.Uuid(), nullable=True),
        sa.Column('attached_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('resource_id', 'sequence', name='uq_content_references_sequence'),
        sa.UniqueConstraint('resource_id', 'kind', 'content_id', name='uq_content_references_content'),
    )

    # Event log table (immutable audit)
    op.create_table(
        'event_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(32), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('principal_id', sa.Uuid(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('request_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_event_log_entity', 'event_log', ['entity_type', 'entity_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_event_log_entity', table_name='event_log')
    op.drop_table('event_log')
    op.drop_table('content_references')
    op.drop_table('resources')
    op.drop_table('principals')
