"""Delivery log table.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

Creates delivery_records with the indexes the retry sweep and the
per-user history read from:
- (status, next_retry_at) for find_retryable
- (user_id, created_at) for list_for_user
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLModel persists enum member names
channel_enum = sa.Enum('SMS', 'EMAIL', 'PUSH', 'IN_APP', name='notificationchannel')
category_enum = sa.Enum(
    'TRANSACTIONAL', 'ALERT', 'REMINDER', 'UPDATE', 'MARKETING', 'SOCIAL',
    name='notificationcategory',
)
priority_enum = sa.Enum('LOW', 'MEDIUM', 'HIGH', 'URGENT', name='notificationpriority')
status_enum = sa.Enum('PENDING', 'SENT', 'FAILED', 'SUPPRESSED', name='deliverystatus')


def upgrade() -> None:
    op.create_table(
        'delivery_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('channel', channel_enum, nullable=False),
        sa.Column('recipient', sa.String(length=512), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('html_content', sa.Text(), nullable=True),
        sa.Column('category', category_enum, nullable=False),
        sa.Column('priority', priority_enum, nullable=False),
        sa.Column('silent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', status_enum, nullable=False),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('next_retry_at', sa.DateTime(), nullable=True),
        sa.Column('provider', sa.String(length=50), nullable=True),
        sa.Column('provider_message_id', sa.String(length=255), nullable=True),
        sa.Column('error_message', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_delivery_records_status_next_retry_at',
        'delivery_records',
        ['status', 'next_retry_at'],
    )
    op.create_index(
        'ix_delivery_records_user_id_created_at',
        'delivery_records',
        ['user_id', 'created_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_delivery_records_user_id_created_at', table_name='delivery_records')
    op.drop_index('ix_delivery_records_status_next_retry_at', table_name='delivery_records')
    op.drop_table('delivery_records')
    bind = op.get_bind()
    for enum in (status_enum, priority_enum, category_enum, channel_enum):
        enum.drop(bind, checkfirst=True)
