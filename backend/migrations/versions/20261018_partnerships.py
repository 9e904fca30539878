"""partnerships and contributed assets

Revision ID: 20261018_partnerships
Revises: 20261018_initial
Create Date: 2026-10-18 12:00:00.000000

Ownership percentages are derived at read time from cash + asset
contributions, so no ownership column is stored.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_partnerships'
down_revision = '20261018_initial'
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table(
        'partnerships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('partner_name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('cash_investment_cents', sa.Integer(), nullable=False),
        sa.Column('investment_date', sa.Date(), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('bank_details', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.CheckConstraint('cash_investment_cents > 0', name='ck_partnerships_cash_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_partnerships_store_id', 'partnerships', ['store_id'])
    op.create_index('ix_partnerships_store_active', 'partnerships', ['store_id', 'is_active'])

    op.create_table(
        'partnership_assets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('partnership_id', sa.Integer(), nullable=False),
        sa.Column('asset_name', sa.String(length=200), nullable=False),
        sa.Column('asset_description', sa.Text(), nullable=True),
        sa.Column('asset_value_cents', sa.Integer(), nullable=False),
        sa.Column('asset_type', sa.String(length=20), nullable=False),
        sa.Column('contributed_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['partnership_id'], ['partnerships.id'], ondelete='CASCADE'),
        sa.CheckConstraint('asset_value_cents > 0', name='ck_partnership_assets_value_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_partnership_assets_partnership_id', 'partnership_assets', ['partnership_id'])
    op.create_index('ix_partnership_assets_asset_type', 'partnership_assets', ['asset_type'])


def downgrade():
    op.drop_table('partnership_assets')
    op.drop_table('partnerships')
