"""
create barbershop, business hours, professional and service tables

Revision ID: 4f1a2b3c4d5e
Revises:
Create Date: 2025-10-03
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '4f1a2b3c4d5e'
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        'barbershop',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('whatsapp_business_account_id', sa.String(length=64), nullable=True),
    )
    op.create_table(
        'business_hours',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barbershop_id', sa.Integer(), sa.ForeignKey('barbershop.id'), nullable=False),
        sa.Column('weekday', sa.Integer(), nullable=False),
        sa.Column('open_time', sa.Time(), nullable=True),
        sa.Column('close_time', sa.Time(), nullable=True),
        sa.Column('closed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('barbershop_id', 'weekday', name='uq_business_hours_weekday'),
    )
    op.create_table(
        'professional',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('barbershop_id', sa.Integer(), sa.ForeignKey('barbershop.id'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
    )
    op.create_table(
        'service',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('barbershop_id', sa.Integer(), sa.ForeignKey('barbershop.id'), nullable=False),
    )
    op.create_table(
        'service_professional',
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('service.id'), primary_key=True),
        sa.Column('professional_id', sa.Integer(), sa.ForeignKey('professional.id'), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table('service_professional')
    op.drop_table('service')
    op.drop_table('professional')
    op.drop_table('business_hours')
    op.drop_table('barbershop')
