"""initial_schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('external_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='client'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('current_week', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_signed_in', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_external_id', 'users', ['external_id'], unique=True)

    # Create tasks table
    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('task_name', sa.String(length=255), nullable=False),
        sa.Column('task_description', sa.Text(), nullable=False),
        sa.Column('quest_description', sa.Text(), nullable=False),
        sa.Column('goal_days', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_tasks_week_number', 'tasks', ['week_number'])

    # Create entries table
    op.create_table(
        'entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_on', sa.Date(), nullable=False),
        sa.Column('completed_hour', sa.Integer(), nullable=False),
        sa.Column('anxiety_before', sa.Integer(), nullable=False),
        sa.Column('anxiety_during', sa.Integer(), nullable=False),
        sa.Column('used_medication', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('win_note', sa.Text(), nullable=True),
        sa.Column('xp_earned', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'completed_on', name='uq_entry_user_day'),
    )
    op.create_index('ix_entries_user_id', 'entries', ['user_id'])
    op.create_index('ix_entry_user_completed_at', 'entries', ['user_id', 'completed_at'])

    # Create user_progression table
    op.create_table(
        'user_progression',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('total_xp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_completion_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_user_progression_user_id', 'user_progression', ['user_id'], unique=True)

    # Create achievement_definitions table
    op.create_table(
        'achievement_definitions',
        sa.Column('id', sa.String(length=100), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('badge_icon', sa.String(length=16), nullable=False),
        sa.Column('unlock_criteria', sa.Text(), nullable=False),
        sa.Column('criterion', sa.String(length=50), nullable=False),
        sa.Column('threshold', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('sort_order', sa.Integer(), nullable=False),
    )
    op.create_index('ix_achievement_sort_order', 'achievement_definitions', ['sort_order'])

    # Create user_achievements table
    op.create_table(
        'user_achievements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'achievement_id',
            sa.String(length=100),
            sa.ForeignKey('achievement_definitions.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('unlocked_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_user_achievements_user_id', 'user_achievements', ['user_id'])
    op.create_index('ix_user_achievements_achievement_id', 'user_achievements', ['achievement_id'])
    op.create_index('ix_user_achievement_unique', 'user_achievements', ['user_id', 'achievement_id'], unique=True)

    # Create notification_settings table
    op.create_table(
        'notification_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_time', sa.String(length=5), nullable=False, server_default='09:00'),
        sa.Column('last_notified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_notification_settings_user_id', 'notification_settings', ['user_id'], unique=True)


def downgrade() -> None:
    op.drop_table('notification_settings')
    op.drop_table('user_achievements')
    op.drop_table('achievement_definitions')
    op.drop_table('user_progression')
    op.drop_table('entries')
    op.drop_table('tasks')
    op.drop_table('users')
