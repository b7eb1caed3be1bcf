"""Initial schema with users and contacts tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table (AUTOINCREMENT so deleted IDs are never handed out again)
    op.create_table(
        'users',
        sa.Column('user_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('surname', sa.String(100), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='Tester'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    # Create contacts table
    op.create_table(
        'contacts',
        sa.Column('contact_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('middle_name', sa.String(100)),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('nickname', sa.String(100)),
        sa.Column('phone_primary', sa.String(20), nullable=False),
        sa.Column('phone_secondary', sa.String(20)),
        sa.Column('birthdate', sa.Date),
        sa.Column('email', sa.String(255)),
        sa.Column('linkedin_url', sa.String(255)),
        sa.Column('address', sa.Text),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
        sqlite_autoincrement=True,
    )

    # Create indexes
    op.create_index('ix_contacts_first_name', 'contacts', ['first_name'])
    op.create_index('ix_contacts_last_name', 'contacts', ['last_name'])


def downgrade() -> None:
    # Drop indexes
    op.drop_index('ix_contacts_last_name', table_name='contacts')
    op.drop_index('ix_contacts_first_name', table_name='contacts')
    op.drop_index('ix_users_username', table_name='users')

    # Drop tables
    op.drop_table('contacts')
    op.drop_table('users')
