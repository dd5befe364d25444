"""Create SKU image tables

Revision ID: 001
Revises: 
Create Date: 2026-10-18 10:00:00.000000

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
    # Create users table (uploader attribution)
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('firstname', sa.String(length=100), nullable=True),
        sa.Column('lastname', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    # Create skus table
    op.create_table(
        'skus',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sku', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_skus_sku'), 'skus', ['sku'], unique=True)

    # Create sku_images table
    op.create_table(
        'sku_images',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sku_id', sa.Uuid(), nullable=False),
        sa.Column('image_url', sa.String(length=1000), nullable=False),
        sa.Column('image_type', sa.String(length=20), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('file_size_kb', sa.Integer(), nullable=True),
        sa.Column('file_format', sa.String(length=20), nullable=True),
        sa.Column('alt_text', sa.String(length=255), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('group_id', sa.Uuid(), nullable=False),
        sa.Column('uploaded_by', sa.Uuid(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['sku_id'], ['skus.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku_id', 'image_url', name='uq_sku_images_sku_id_image_url')
    )
    op.create_index(op.f('ix_sku_images_sku_id'), 'sku_images', ['sku_id'], unique=False)
    op.create_index(op.f('ix_sku_images_group_id'), 'sku_images', ['group_id'], unique=False)
    op.create_index(
        'ix_sku_images_sku_primary_order',
        'sku_images',
        ['sku_id', 'is_primary', 'display_order'],
        unique=False
    )


def downgrade() -> None:
    op.drop_index('ix_sku_images_sku_primary_order', table_name='sku_images')
    op.drop_index(op.f('ix_sku_images_group_id'), table_name='sku_images')
    op.drop_index(op.f('ix_sku_images_sku_id'), table_name='sku_images')
    op.drop_table('sku_images')

    op.drop_index(op.f('ix_skus_sku'), table_name='skus')
    op.drop_table('skus')

    op.drop_table('users')
