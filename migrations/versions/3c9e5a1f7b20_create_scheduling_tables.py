"""Create donation centers, donors, appointments and audit log tables

Revision ID: 3c9e5a1f7b20
Revises:
Create Date: 2026-10-18 09:30:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9e5a1f7b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'donation_centers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('capacity IS NULL OR capacity > 0', name='ck_donation_centers_capacity_positive'),
    )

    op.create_table(
        'donors',
        sa.Column('donor_hash_id', sa.String(length=128), primary_key=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('preferred_language', sa.String(length=10), nullable=True),
        sa.Column('last_donation_date', sa.Date(), nullable=True),
        sa.Column('total_donations_this_year', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('total_donations_this_year >= 0', name='ck_donors_total_donations_non_negative'),
    )

    op.create_table(
        'appointments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('donor_hash_id', sa.String(length=128), sa.ForeignKey('donors.donor_hash_id'), nullable=False),
        sa.Column('staff_id', sa.String(length=64), nullable=True),
        sa.Column('donation_center_id', sa.String(length=36), sa.ForeignKey('donation_centers.id'), nullable=False),
        sa.Column('appointment_datetime', sa.DateTime(), nullable=False),
        sa.Column('donation_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('booking_channel', sa.String(length=50), nullable=True, server_default='staff_portal'),
        sa.Column('confirmation_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'arrived', 'in-progress', 'completed', 'cancelled', 'no-show')",
            name='ck_appointments_status',
        ),
        sa.CheckConstraint("donation_type IN ('whole_blood', 'plasma')", name='ck_appointments_donation_type'),
    )
    with op.batch_alter_table('appointments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_appointments_donor_hash_id'), ['donor_hash_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_donation_center_id'), ['donation_center_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_appointment_datetime'), ['appointment_datetime'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_status'), ['status'], unique=False)
        batch_op.create_index('ix_appointments_center_datetime', ['donation_center_id', 'appointment_datetime'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('resource_type', sa.String(length=64), nullable=True),
        sa.Column('resource_id', sa.String(length=64), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('outcome', sa.String(length=16), nullable=False, server_default='success'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_logs_actor_id'), ['actor_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_action'), ['action'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_resource_type'), ['resource_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_resource_id'), ['resource_id'], unique=False)


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('appointments')
    op.drop_table('donors')
    op.drop_table('donation_centers')
