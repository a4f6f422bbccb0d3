"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.Text()),
        sa.Column('last_name', sa.Text()),
        sa.Column('phone_number', sa.Text()),
        sa.Column('email', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    op.create_table(
        'businesses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column('contact_phone', sa.Text()),
        sa.Column('contact_email', sa.Text()),
        sa.Column('city', sa.Text()),
        sa.Column('address', sa.Text()),
    )

    op.create_table(
        'availability_templates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('business_id', sa.Integer(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'draft'")),
        sa.Column('slot_duration_minutes', sa.Integer(), nullable=False),
        sa.Column('capacity_per_slot', sa.Integer(), nullable=False),
        sa.Column('weekly_schedule', sa.JSON(), nullable=False),
        sa.Column('revision', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('slot_duration_minutes > 0', name='ck_template_duration_positive'),
        sa.CheckConstraint('capacity_per_slot > 0', name='ck_template_capacity_positive'),
        sa.CheckConstraint("status IN ('draft', 'active', 'inactive')", name='ck_template_status'),
    )
    op.create_index(
        'ix_template_business_duration',
        'availability_templates',
        ['business_id', 'slot_duration_minutes', 'status'],
    )

    op.create_table(
        'template_exceptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('template_id', sa.Integer(), sa.ForeignKey('availability_templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text()),
    )

    op.create_table(
        'activities',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('business_id', sa.Integer(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type_id', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'draft'")),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('availability_template_id', sa.Integer(), sa.ForeignKey('availability_templates.id', ondelete='SET NULL')),
        sa.Column('duration_minutes', sa.Integer()),
        sa.Column('capacity_override', sa.Integer()),
        sa.Column('price_from', sa.Float()),
        sa.Column('description', sa.Text()),
        sa.Column('city', sa.Text()),
        sa.Column('address', sa.Text()),
        sa.Column('thumbnail_url', sa.Text()),
        sa.CheckConstraint("status IN ('draft', 'published', 'inactive')", name='ck_activity_status'),
    )

    op.create_table(
        'slot_capacity',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('activity_id', sa.Integer(), sa.ForeignKey('activities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('slot_start', sa.DateTime(), nullable=False),
        sa.Column('booked_seats', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.CheckConstraint('booked_seats >= 0', name='ck_slot_booked_non_negative'),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('activity_id', sa.Integer(), sa.ForeignKey('activities.id'), nullable=False),
        sa.Column('business_id', sa.Integer(), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('slot_start', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('participants_count', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column('activity_snapshot', sa.JSON(), nullable=False),
        sa.Column('business_snapshot', sa.JSON(), nullable=False),
        sa.Column('selection_snapshot', sa.JSON(), nullable=False),
        sa.Column('price_snapshot', sa.JSON(), nullable=False),
        sa.Column('payment_amount', sa.Float()),
        sa.Column('payment_currency', sa.Text()),
        sa.Column('cancel_reason', sa.Text()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('participants_count >= 1', name='ck_booking_participants_positive'),
        sa.CheckConstraint("status IN ('active', 'cancelled', 'completed')", name='ck_booking_status'),
    )
    op.create_index('ix_booking_activity_slot', 'bookings', ['activity_id', 'slot_start', 'status'])
    op.create_index('ix_booking_user_slot', 'bookings', ['user_id', 'slot_start'])
    op.create_index('ix_booking_business_slot', 'bookings', ['business_id', 'slot_start'])


def downgrade():
    op.drop_index('ix_booking_business_slot', table_name='bookings')
    op.drop_index('ix_booking_user_slot', table_name='bookings')
    op.drop_index('ix_booking_activity_slot', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('slot_capacity')
    op.drop_table('activities')
    op.drop_table('template_exceptions')
    op.drop_index('ix_template_business_duration', table_name='availability_templates')
    op.drop_table('availability_templates')
    op.drop_table('businesses')
    op.drop_table('users')
