"""Create follows, blocked_users and muted_users tables

Revision ID: 0001_relationship_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_relationship_tables'
down_revision = None
branch_labels = None
depends_on = None


def _edge_table(name: str, actor_column: str, target_column: str, unique_name: str) -> None:
    op.create_table(
        name,
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column(actor_column, sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column(target_column, sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(actor_column, target_column, name=unique_name),
    )


def upgrade() -> None:
    # profiles is owned by the account service and must already exist
    _edge_table('follows', 'follower_id', 'following_id', 'uq_follows_follower_following')
    op.create_index('ix_follows_follower_id', 'follows', ['follower_id'], unique=False)
    op.create_index('ix_follows_following_id', 'follows', ['following_id'], unique=False)

    _edge_table('blocked_users', 'user_id', 'blocked_user_id', 'uq_blocked_users_user_blocked')
    op.create_index('ix_blocked_users_user_id', 'blocked_users', ['user_id'], unique=False)
    op.create_index('ix_blocked_users_blocked_user_id', 'blocked_users', ['blocked_user_id'], unique=False)

    _edge_table('muted_users', 'user_id', 'muted_user_id', 'uq_muted_users_user_muted')
    op.create_index('ix_muted_users_user_id', 'muted_users', ['user_id'], unique=False)


def downgrade() -> None:
    # Drop indexes first
    op.drop_index('ix_muted_users_user_id', table_name='muted_users')
    op.drop_table('muted_users')

    op.drop_index('ix_blocked_users_blocked_user_id', table_name='blocked_users')
    op.drop_index('ix_blocked_users_user_id', table_name='blocked_users')
    op.drop_table('blocked_users')

    op.drop_index('ix_follows_following_id', table_name='follows')
    op.drop_index('ix_follows_follower_id', table_name='follows')
    op.drop_table('follows')
