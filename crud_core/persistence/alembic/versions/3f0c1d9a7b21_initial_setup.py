"""initial setup

Revision ID: 3f0c1d9a7b21
Revises: 
Create Date: 2026-09-02 18:41:07.381522

"""
from alembic import op
import sqlalchemy as sa


revision = '3f0c1d9a7b21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'roles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('row_version', sa.LargeBinary(length=16), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_table(
        'people',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('row_version', sa.LargeBinary(length=16), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'person_roles',
        sa.Column('person_id', sa.Uuid(), nullable=False),
        sa.Column('role_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['person_id'], ['people.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('person_id', 'role_id')
    )
    op.create_table(
        'walls',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('length', sa.Float(), nullable=False),
        sa.Column('height', sa.Float(), nullable=False),
        sa.Column('thickness', sa.Float(), nullable=False),
        sa.Column('assembly_type', sa.String(length=500), nullable=False),
        sa.Column('assembly_details', sa.String(length=1000), nullable=True),
        sa.Column('r_value', sa.Float(), nullable=True),
        sa.Column('u_value', sa.Float(), nullable=True),
        sa.Column('material_layers', sa.Text(), nullable=True),
        sa.Column('orientation', sa.String(length=50), nullable=True),
        sa.Column('location', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('length > 0'),
        sa.CheckConstraint('height > 0'),
        sa.CheckConstraint('thickness > 0'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'windows',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('width', sa.Float(), nullable=False),
        sa.Column('height', sa.Float(), nullable=False),
        sa.Column('area', sa.Float(), nullable=False),
        sa.Column('frame_type', sa.String(length=100), nullable=False),
        sa.Column('frame_details', sa.String(length=500), nullable=True),
        sa.Column('glazing_type', sa.String(length=100), nullable=False),
        sa.Column('glazing_details', sa.String(length=500), nullable=True),
        sa.Column('u_value', sa.Float(), nullable=True),
        sa.Column('solar_heat_gain_coefficient', sa.Float(), nullable=True),
        sa.Column('visible_transmittance', sa.Float(), nullable=True),
        sa.Column('air_leakage', sa.Float(), nullable=True),
        sa.Column('energy_star_rating', sa.String(length=50), nullable=True),
        sa.Column('nfrc_rating', sa.String(length=50), nullable=True),
        sa.Column('orientation', sa.String(length=50), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('installation_type', sa.String(length=50), nullable=True),
        sa.Column('operation_type', sa.String(length=100), nullable=True),
        sa.Column('has_screens', sa.Boolean(), nullable=True),
        sa.Column('has_storm_windows', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('width > 0'),
        sa.CheckConstraint('height > 0'),
        sa.CheckConstraint('area > 0'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=256), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('locked', sa.Boolean(), nullable=False),
        sa.Column('row_version', sa.LargeBinary(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('token', sa.String(length=512), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token')
    )


def downgrade():
    op.drop_table('refresh_tokens')
    op.drop_table('users')
    op.drop_table('windows')
    op.drop_table('walls')
    op.drop_table('person_roles')
    op.drop_table('people')
    op.drop_table('roles')
