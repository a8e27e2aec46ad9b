"""create notes and categories

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

Creates tables for note storage:
- notes: Notes with JSON tags/metadata, soft-deleted through deleted_at
- note_categories: Per-user categories, unique by name
- note_category_assignments: Note <-> category links
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create note and category tables"""

    # notes table
    op.create_table(
        'notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', sa.String(20), nullable=False, server_default='standard'),
        sa.Column('starred', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE')
    )

    # note_categories table
    op.create_table(
        'note_categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(7), nullable=False, server_default='#238636'),
        sa.Column('icon', sa.String(10), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'name', name='uq_note_categories_user_name')
    )

    # note_category_assignments table
    op.create_table(
        'note_category_assignments',
        sa.Column('note_id', sa.Uuid(), primary_key=True),
        sa.Column('category_id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['note_id'], ['notes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['note_categories.id'], ondelete='CASCADE')
    )

    # Indexes for the per-user listing queries
    op.create_index('ix_notes_user_deleted', 'notes', ['user_id', 'deleted_at'])
    op.create_index('ix_notes_user_updated', 'notes', ['user_id', 'updated_at'])


def downgrade() -> None:
    """Drop note and category tables"""
    op.drop_index('ix_notes_user_updated', table_name='notes')
    op.drop_index('ix_notes_user_deleted', table_name='notes')

    op.drop_table('note_category_assignments')
    op.drop_table('note_categories')
    op.drop_table('notes')
