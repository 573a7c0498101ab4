"""add password reset tokens and timestamps of people and roles

Revision ID: 9b4e27c5d0f6
Revises: 3f0c1d9a7b21
Create Date: 2026-09-21 11:02:53.914870

"""
from alembic import op
import sqlalchemy as sa


revision = '9b4e27c5d0f6'
down_revision = '3f0c1d9a7b21'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'password_reset_tokens',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('row_version', sa.LargeBinary(length=16), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token')
    )
    for table in ('roles', 'people'):
        with op.batch_alter_table(table, recreate="always") as batch_op:
            batch_op.add_column(sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()))
            batch_op.add_column(sa.Column('updated_at', sa.DateTime(), nullable=True))


def downgrade():
    for table in ('people', 'roles'):
        with op.batch_alter_table(table, recreate="always") as batch_op:
            batch_op.drop_column('updated_at')
            batch_op.drop_column('created_at')
    op.drop_table('password_reset_tokens')
