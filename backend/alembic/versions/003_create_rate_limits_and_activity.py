"""create rate limits and activity log

Revision ID: 003
Revises: 002
Create Date: 2026-10-17

Creates tables for request bookkeeping:
- rate_limits: Fixed-window counters per client and endpoint
- activity_logs: Best-effort trail of user actions
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create rate limit and activity tables"""

    # rate_limits table
    op.create_table(
        'rate_limits',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('identifier', sa.String(255), nullable=False),
        sa.Column('endpoint', sa.String(255), nullable=False),
        sa.Column('request_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('window_start', sa.DateTime(), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )

    # activity_logs table (no FK on user_id: entries outlive users)
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('action', sa.String(50), nullable=False, index=True),
        sa.Column('resource_type', sa.String(50), nullable=True),
        sa.Column('resource_id', sa.String(64), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )

    op.create_index('ix_rate_limits_lookup', 'rate_limits', ['identifier', 'endpoint', 'window_start'])
    op.create_index('ix_activity_logs_user_created', 'activity_logs', ['user_id', 'created_at'])


def downgrade() -> None:
    """Drop rate limit and activity tables"""
    op.drop_index('ix_activity_logs_user_created', table_name='activity_logs')
    op.drop_index('ix_rate_limits_lookup', table_name='rate_limits')

    op.drop_table('activity_logs')
    op.drop_table('rate_limits')
