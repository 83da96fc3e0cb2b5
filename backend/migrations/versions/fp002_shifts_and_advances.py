"""shifts and salary advances

Revision ID: fp002
Revises: fp001
Create Date: 2026-10-19 12:00:00.000000

- shifts: one row per cashier shift (OPEN -> CLOSED)
- advances: salary advances paid out of a cash register
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'fp002'
down_revision = 'fp001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        sa.Column('exchange_rate', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('opening_balance_uzs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('opening_balance_usd_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shifts_user_id', 'shifts', ['user_id'])
    op.create_index('ix_shifts_status', 'shifts', ['status'])
    op.create_index('ix_shifts_user_status', 'shifts', ['user_id', 'status'])

    op.create_table(
        'advances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount_uzs', sa.Integer(), nullable=False),
        sa.Column('cash_register', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('given_by_user_id', sa.Integer(), nullable=False),
        sa.Column('register_op_id', sa.Integer(), nullable=True),
        sa.Column('given_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['given_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['register_op_id'], ['cash_register_ops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_advances_user_given', 'advances', ['user_id', 'given_at'])


def downgrade():
    op.drop_table('advances')
    op.drop_table('shifts')
