"""Initial schema: users, catalog, payments and short-lived credentials.

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
    # Users table
    op.create_table(
        'users',
        sa.Column('user_id', sa.String(32), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('phone', sa.String(20), unique=True, nullable=True),
        sa.Column('hashed_password', sa.String(255), nullable=True),
        # Identity provider
        sa.Column('google_id', sa.String(64), unique=True, nullable=True),
        sa.Column('provider', sa.String(10), server_default='local'),
        # Profile
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), server_default=''),
        sa.Column('avatar', sa.String(500), server_default=''),
        sa.Column('role', sa.String(10), server_default='user'),
        # Subscription
        sa.Column('subscription_plan', sa.String(10), server_default='none'),
        sa.Column('subscription_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscription_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminder_sent', sa.Boolean(), server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index('idx_users_subscription', 'users', ['subscription_plan', 'subscription_end'])

    # Comics table
    op.create_table(
        'comics',
        sa.Column('comic_id', sa.String(32), primary_key=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('cover_image', sa.String(500), nullable=False),
        sa.Column('author', sa.String(50), nullable=False),
        sa.Column('premium', sa.Boolean(), server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('title', 'author', name='uq_comics_title_author'),
    )
    op.create_index('idx_comics_created_at', 'comics', ['created_at'])

    # Genre tags
    op.create_table(
        'comic_genres',
        sa.Column('comic_id', sa.String(32), sa.ForeignKey('comics.comic_id', ondelete='CASCADE'), primary_key=True),
        sa.Column('genre', sa.String(30), primary_key=True),
    )
    op.create_index('idx_comic_genres_genre', 'comic_genres', ['genre'])

    # Comic likes
    op.create_table(
        'comic_likes',
        sa.Column('comic_id', sa.String(32), sa.ForeignKey('comics.comic_id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(32), sa.ForeignKey('users.user_id', ondelete='CASCADE'), primary_key=True),
    )

    # Chapters table
    op.create_table(
        'chapters',
        sa.Column('chapter_id', sa.String(32), primary_key=True),
        sa.Column('comic_id', sa.String(32), sa.ForeignKey('comics.comic_id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('chapter_number', sa.Integer(), nullable=False),
        sa.Column('pdf_url', sa.String(1000), nullable=False),
        sa.Column('premium', sa.Boolean(), server_default='false'),
        sa.Column('available_offline', sa.Boolean(), server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('comic_id', 'chapter_number', name='uq_chapters_comic_number'),
    )

    # Reviews table
    op.create_table(
        'reviews',
        sa.Column('review_id', sa.String(32), primary_key=True),
        sa.Column('user_id', sa.String(32), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('comic_id', sa.String(32), sa.ForeignKey('comics.comic_id', ondelete='CASCADE'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('user_id', 'comic_id', name='uq_reviews_user_comic'),
    )

    # Review likes
    op.create_table(
        'review_likes',
        sa.Column('review_id', sa.String(32), sa.ForeignKey('reviews.review_id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(32), sa.ForeignKey('users.user_id', ondelete='CASCADE'), primary_key=True),
    )

    # Subscription plan pricing
    op.create_table(
        'subscription_plans',
        sa.Column('plan_type', sa.String(20), primary_key=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Payments table
    op.create_table(
        'payments',
        sa.Column('payment_id', sa.String(32), primary_key=True),
        sa.Column('user_id', sa.String(32), sa.ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('plan_type', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_intent_id', sa.String(255), unique=True, nullable=False),
        sa.Column('status', sa.String(10), server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index('idx_payments_user_status', 'payments', ['user_id', 'status'])

    # Short-lived credentials
    op.create_table(
        'otps',
        sa.Column('email', sa.String(255), primary_key=True),
        sa.Column('otp', sa.String(6), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_otps_expires_at', 'otps', ['expires_at'])

    op.create_table(
        'reset_tokens',
        sa.Column('email', sa.String(255), primary_key=True),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_reset_tokens_expires_at', 'reset_tokens', ['expires_at'])

    op.create_table(
        'pending_signups',
        sa.Column('email', sa.String(255), primary_key=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), server_default=''),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('avatar', sa.String(500), server_default=''),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_pending_signups_expires_at', 'pending_signups', ['expires_at'])


def downgrade() -> None:
    op.drop_table('pending_signups')
    op.drop_table('reset_tokens')
    op.drop_table('otps')
    op.drop_table('payments')
    op.drop_table('subscription_plans')
    op.drop_table('review_likes')
    op.drop_table('reviews')
    op.drop_table('chapters')
    op.drop_table('comic_likes')
    op.drop_table('comic_genres')
    op.drop_table('comics')
    op.drop_table('users')
