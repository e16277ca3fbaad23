"""create tree_nodes

Revision ID: 4b1e7c2d9a10
Revises:
Create Date: 2026-03-01 09:00:00.000000+00:00

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '4b1e7c2d9a10'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        'tree_nodes',
        sa.Column(
            'id',
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment='Auto-incrementing integer primary key',
        ),
        sa.Column('owner_id', sa.BigInteger(), nullable=False, comment='Opaque forest tag'),
        sa.Column('label', sa.String(length=255), nullable=True, comment='Optional display label'),
        sa.Column('lft', sa.Integer(), nullable=False, comment='Nested-set left bound'),
        sa.Column('rgt', sa.Integer(), nullable=False, comment='Nested-set right bound'),
        sa.Column(
            'depth',
            sa.Integer(),
            nullable=False,
            comment='Distance from the root (0 for the root)',
        ),
        sa.CheckConstraint('lft >= 0', name=op.f('ck_tree_nodes_lft_non_negative')),
        sa.CheckConstraint('rgt > lft', name=op.f('ck_tree_nodes_rgt_after_lft')),
        sa.CheckConstraint('depth >= 0', name=op.f('ck_tree_nodes_depth_non_negative')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tree_nodes')),
    )
    op.create_index(op.f('ix_tree_nodes_owner_id'), 'tree_nodes', ['owner_id'], unique=False)
    op.create_index(op.f('ix_tree_nodes_lft'), 'tree_nodes', ['lft'], unique=False)
    op.create_index(op.f('ix_tree_nodes_rgt'), 'tree_nodes', ['rgt'], unique=False)
    op.create_index(op.f('ix_tree_nodes_depth'), 'tree_nodes', ['depth'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index(op.f('ix_tree_nodes_depth'), table_name='tree_nodes')
    op.drop_index(op.f('ix_tree_nodes_rgt'), table_name='tree_nodes')
    op.drop_index(op.f('ix_tree_nodes_lft'), table_name='tree_nodes')
    op.drop_index(op.f('ix_tree_nodes_owner_id'), table_name='tree_nodes')
    op.drop_table('tree_nodes')
