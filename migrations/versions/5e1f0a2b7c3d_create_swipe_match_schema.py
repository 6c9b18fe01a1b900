"""create_swipe_match_schema

Revision ID: 5e1f0a2b7c3d
Revises:
Create Date: 2026-10-19 09:12:41.508213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1f0a2b7c3d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    user_role = sa.Enum('JOB_SEEKER', 'RECRUITER', name='userrole')

    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('total_swipes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_matches', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'job_seeker_profiles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('headline', sa.String(length=255), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_job_seeker_profiles_id', 'job_seeker_profiles', ['id'])
    op.create_index('ix_job_seeker_profiles_user_id', 'job_seeker_profiles', ['user_id'], unique=True)

    op.create_table(
        'jobs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('recruiter_id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('match_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['recruiter_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_jobs_id', 'jobs', ['id'])
    op.create_index('ix_jobs_recruiter_id', 'jobs', ['recruiter_id'])
    op.create_index('ix_jobs_title', 'jobs', ['title'])
    op.create_index('ix_jobs_is_active', 'jobs', ['is_active'])
    op.create_index('ix_jobs_created_at', 'jobs', ['created_at'])

    op.create_table(
        'swipes',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('swiper_id', sa.UUID(), nullable=False),
        sa.Column('target_id', sa.UUID(), nullable=False),
        sa.Column('category', sa.String(length=10), nullable=False),
        sa.Column('direction', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['swiper_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('swiper_id', 'target_id', 'category', name='unique_swiper_target_category'),
        sa.CheckConstraint("category IN ('job', 'profile')", name='check_swipe_category'),
        sa.CheckConstraint("direction IN ('reject', 'interested', 'super_interested')", name='check_swipe_direction'),
    )
    op.create_index('ix_swipes_id', 'swipes', ['id'])
    op.create_index('ix_swipes_swiper_id', 'swipes', ['swiper_id'])
    op.create_index('ix_swipes_target_id', 'swipes', ['target_id'])
    op.create_index('ix_swipes_created_at', 'swipes', ['created_at'])

    op.create_table(
        'matches',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('job_id', sa.UUID(), nullable=False),
        sa.Column('job_seeker_id', sa.UUID(), nullable=False),
        sa.Column('recruiter_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('application_status', sa.String(length=20), nullable=False),
        sa.Column('job_seeker_swiped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('recruiter_swiped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('job_seeker_unread_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('recruiter_unread_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['job_seeker_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['recruiter_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('job_id', 'job_seeker_id', name='unique_job_seeker_match'),
        sa.CheckConstraint("status IN ('pending', 'matched', 'unmatched')", name='check_match_status'),
    )
    op.create_index('ix_matches_id', 'matches', ['id'])
    op.create_index('ix_matches_job_id', 'matches', ['job_id'])
    op.create_index('ix_matches_job_seeker_id', 'matches', ['job_seeker_id'])
    op.create_index('ix_matches_recruiter_id', 'matches', ['recruiter_id'])
    op.create_index('ix_matches_status', 'matches', ['status'])
    op.create_index('ix_matches_last_activity_at', 'matches', ['last_activity_at'])

    op.create_table(
        'messages',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('match_id', sa.UUID(), nullable=False),
        sa.Column('sender_id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_messages_id', 'messages', ['id'])
    op.create_index('ix_messages_match_id', 'messages', ['match_id'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('messages')
    op.drop_table('matches')
    op.drop_table('swipes')
    op.drop_table('jobs')
    op.drop_table('job_seeker_profiles')
    op.drop_table('users')
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
