"""create users and links

Revision ID: 4f1c2a9d7e30
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '4f1c2a9d7e30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column(
            'provider',
            sa.Enum('GOOGLE', 'GITHUB', name='auth_provider', native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column('external_id', sa.String(length=255), nullable=False),
        sa.Column('refresh_token_hash', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('provider', 'external_id', name='uq_users_provider_external_id'),
    )

    op.create_table(
        'links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('original_url', sa.String(length=2048), nullable=False),
        sa.Column('short_code', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('click_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('click_count >= 0', name=op.f('ck_links_click_count_non_negative')),
        sa.CheckConstraint(
            'owner_id IS NOT NULL OR expires_at IS NOT NULL',
            name=op.f('ck_links_anonymous_requires_expiry'),
        ),
        sa.ForeignKeyConstraint(
            ['owner_id'], ['users.id'],
            name=op.f('fk_links_owner_id_users'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_links')),
        sa.UniqueConstraint('short_code', name='uq_links_short_code'),
    )
    with op.batch_alter_table('links', schema=None) as batch_op:
        batch_op.create_index('ix_links_owner_id', ['owner_id'], unique=False)
        batch_op.create_index('ix_links_expires_at', ['expires_at'], unique=False)


def downgrade():
    with op.batch_alter_table('links', schema=None) as batch_op:
        batch_op.drop_index('ix_links_expires_at')
        batch_op.drop_index('ix_links_owner_id')

    op.drop_table('links')
    op.drop_table('users')
