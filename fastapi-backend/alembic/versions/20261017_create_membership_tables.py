"""create_membership_tables

Revision ID: 3f2a9c1d7e4b
Revises:
Create Date: 2026-10-17 09:00:00.000000

Creates the tables the membership service reads and writes:
1. Users (directory of people who can be added)
2. Projects (roster owner, with roster_version for compare-and-swap)
3. ProjectMembers (one row per membership, unique per project/user)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e4b'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table('Users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('first_name', sa.String(length=100), nullable=False, server_default=''),
    sa.Column('last_name', sa.String(length=100), nullable=False, server_default=''),
    sa.Column('avatar_url', sa.String(length=500), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_Users_email', 'Users', ['email'], unique=True)
    op.create_index('ix_Users_last_name', 'Users', ['last_name'], unique=False)

    op.create_table('Projects',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('key', sa.String(length=10), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('lead_user_id', sa.Uuid(), nullable=True),
    sa.Column('roster_version', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['lead_user_id'], ['Users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('key')
    )

    op.create_table('ProjectMembers',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('project_id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('role', sa.String(length=20), nullable=False, server_default='Member'),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['project_id'], ['Projects.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['Users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('project_id', 'user_id', name='uq_ProjectMembers_project_user')
    )
    op.create_index('ix_ProjectMembers_project_id', 'ProjectMembers', ['project_id'], unique=False)
    op.create_index('ix_ProjectMembers_user_id', 'ProjectMembers', ['user_id'], unique=False)
    op.create_index('ix_ProjectMembers_created_at', 'ProjectMembers', ['created_at'], unique=False)
    op.create_index('ix_ProjectMembers_project_role', 'ProjectMembers', ['project_id', 'role'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_ProjectMembers_project_role', table_name='ProjectMembers')
    op.drop_index('ix_ProjectMembers_created_at', table_name='ProjectMembers')
    op.drop_index('ix_ProjectMembers_user_id', table_name='ProjectMembers')
    op.drop_index('ix_ProjectMembers_project_id', table_name='ProjectMembers')
    op.drop_table('ProjectMembers')
    op.drop_table('Projects')
    op.drop_index('ix_Users_last_name', table_name='Users')
    op.drop_index('ix_Users_email', table_name='Users')
    op.drop_table('Users')
