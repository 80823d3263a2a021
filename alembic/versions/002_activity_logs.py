"""activity_logs

Revision ID: 002_activity_logs
Revises: 001_initial
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002_activity_logs'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create activity_logs table
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action_type', sa.String(length=32), nullable=False),
        sa.Column('page_path', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('device_type', sa.String(length=16), nullable=False, server_default='desktop'),
        sa.Column('browser', sa.String(length=32), nullable=False, server_default='Unknown'),
        sa.Column('os', sa.String(length=32), nullable=False, server_default='Unknown'),
        sa.Column('session_id', sa.String(length=64), nullable=True),
        sa.Column('session_duration', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_activity_user_occurred_at', 'activity_logs', ['user_id', 'occurred_at'])


def downgrade() -> None:
    op.drop_index('ix_activity_user_occurred_at', table_name='activity_logs')
    op.drop_table('activity_logs')
