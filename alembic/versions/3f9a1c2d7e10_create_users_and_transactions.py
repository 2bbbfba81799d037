"""create_users_and_transactions

Revision ID: 3f9a1c2d7e10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

import refer_earn.db.models


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the users (referral forest) and transactions tables."""
    op.create_table('users',
        sa.Column('id', refer_earn.db.models.GUID(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('password_salt', sa.String(length=64), nullable=False),
        sa.Column('referral_code', sa.String(length=8), nullable=False),
        sa.Column('referred_by_id', refer_earn.db.models.GUID(), nullable=True),
        sa.Column('referral_slot', sa.Integer(), nullable=True),
        sa.Column('referral_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('direct_earnings', sa.Numeric(precision=18, scale=2), nullable=False, server_default='0'),
        sa.Column('indirect_earnings', sa.Numeric(precision=18, scale=2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['referred_by_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('referral_code', name='uq_users_referral_code'),
        sa.UniqueConstraint('referred_by_id', 'referral_slot', name='uq_users_referral_slot')
    )
    op.create_index('ix_users_referred_by_id', 'users', ['referred_by_id'], unique=False)

    op.create_table('transactions',
        sa.Column('id', refer_earn.db.models.GUID(), nullable=False),
        sa.Column('user_id', refer_earn.db.models.GUID(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transactions_user_created', 'transactions', ['user_id', 'created_at'], unique=False)


def downgrade() -> None:
    """Drop the transactions and users tables."""
    op.drop_index('ix_transactions_user_created', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_users_referred_by_id', table_name='users')
    op.drop_table('users')
