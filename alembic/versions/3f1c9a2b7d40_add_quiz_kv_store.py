"""add_quiz_kv_store

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('kv_entries',
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_index('ix_kv_entries_expires_at', 'kv_entries', ['expires_at'])

    op.create_table('kv_counters',
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('field', sa.String(255), nullable=False, server_default=''),
        sa.Column('value', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('key', 'field')
    )
    op.create_index('ix_kv_counters_expires_at', 'kv_counters', ['expires_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_kv_counters_expires_at', table_name='kv_counters')
    op.drop_table('kv_counters')
    op.drop_index('ix_kv_entries_expires_at', table_name='kv_entries')
    op.drop_table('kv_entries')
