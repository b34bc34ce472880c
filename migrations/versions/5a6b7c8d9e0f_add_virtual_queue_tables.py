"""
add virtual queue settings, entries, logs and appointments

Revision ID: 5a6b7c8d9e0f
Revises: 4f1a2b3c4d5e
Create Date: 2025-10-03
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '5a6b7c8d9e0f'
down_revision = '4f1a2b3c4d5e'
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        'queue_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barbershop_id', sa.Integer(), sa.ForeignKey('barbershop.id'), nullable=False, unique=True),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('eta_weight', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('position_weight', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('wait_time_bonus', sa.Float(), nullable=False, server_default='0.5'),
        sa.Column('buffer_percentage', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'queue_entry',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barbershop_id', sa.Integer(), sa.ForeignKey('barbershop.id'), nullable=False),
        sa.Column('client_name', sa.String(length=150), nullable=False),
        sa.Column('client_phone', sa.String(length=20), nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('service.id'), nullable=False),
        sa.Column('professional_id', sa.Integer(), sa.ForeignKey('professional.id'), nullable=True),
        sa.Column('travel_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='waiting'),
        sa.Column('priority_score', sa.Float(), nullable=True),
        sa.Column('notification_sent_at', sa.DateTime(), nullable=True),
        sa.Column('notification_expires_at', sa.DateTime(), nullable=True),
        sa.Column('reserved_slot_start', sa.DateTime(), nullable=True),
        sa.Column('reserved_slot_end', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_queue_entry_barbershop_id', 'queue_entry', ['barbershop_id'])
    op.create_index('ix_queue_entry_status', 'queue_entry', ['status'])

    op.create_table(
        'appointment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barbershop_id', sa.Integer(), sa.ForeignKey('barbershop.id'), nullable=False),
        sa.Column('professional_id', sa.Integer(), sa.ForeignKey('professional.id'), nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('service.id'), nullable=True),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('client_name', sa.String(length=150), nullable=True),
        sa.Column('client_phone', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('source', sa.String(length=32), nullable=True),
        sa.Column('queue_entry_id', sa.Integer(), sa.ForeignKey('queue_entry.id'), nullable=True, unique=True),
    )
    op.create_index('ix_appointment_start_at', 'appointment', ['start_at'])

    op.create_table(
        'queue_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('queue_entry_id', sa.Integer(), sa.ForeignKey('queue_entry.id'), nullable=False),
        sa.Column('barbershop_id', sa.Integer(), sa.ForeignKey('barbershop.id'), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('event_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('queue_log')
    op.drop_index('ix_appointment_start_at', table_name='appointment')
    op.drop_table('appointment')
    op.drop_index('ix_queue_entry_status', table_name='queue_entry')
    op.drop_index('ix_queue_entry_barbershop_id', table_name='queue_entry')
    op.drop_table('queue_entry')
    op.drop_table('queue_settings')
