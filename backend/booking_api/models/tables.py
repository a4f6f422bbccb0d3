from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Users(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    first_name = Column(Text)
    last_name = Column(Text)
    phone_number = Column(Text)
    email = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    businesses = relationship('Businesses', back_populates='owner')
    bookings = relationship('Bookings', back_populates='user')


class Businesses(Base):
    __tablename__ = 'businesses'

    owner_user_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'active'"))
    id = Column(Integer, primary_key=True)
    contact_phone = Column(Text)
    contact_email = Column(Text)
    city = Column(Text)
    address = Column(Text)

    owner = relationship('Users', back_populates='businesses')
    templates = relationship('AvailabilityTemplates', back_populates='business')
    activities = relationship('Activities', back_populates='business')


class AvailabilityTemplates(Base):
    __tablename__ = 'availability_templates'
    __table_args__ = (
        CheckConstraint('slot_duration_minutes > 0', name='ck_template_duration_positive'),
        CheckConstraint('capacity_per_slot > 0', name='ck_template_capacity_positive'),
        CheckConstraint(
            "status IN ('draft', 'active', 'inactive')", name='ck_template_status'
        ),
        Index('ix_template_business_duration', 'business_id', 'slot_duration_minutes', 'status'),
    )

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'draft'"))
    slot_duration_minutes = Column(Integer, nullable=False)
    capacity_per_slot = Column(Integer, nullable=False)
    # {"0": [["09:00", "12:00"], ["14:00", "18:00"]], ...} or {"mon": [...], ...}
    weekly_schedule = Column(JSON, nullable=False, default=dict)
    revision = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(DateTime, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    business = relationship('Businesses', back_populates='templates')
    exceptions = relationship(
        'TemplateExceptions',
        back_populates='template',
        cascade='all, delete-orphan',
        order_by='TemplateExceptions.start_date',
    )
    activities = relationship('Activities', back_populates='availability_template')


class TemplateExceptions(Base):
    __tablename__ = 'template_exceptions'

    template_id = Column(ForeignKey('availability_templates.id', ondelete='CASCADE'), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    id = Column(Integer, primary_key=True)
    reason = Column(Text)

    template = relationship('AvailabilityTemplates', back_populates='exceptions')


class Activities(Base):
    __tablename__ = 'activities'
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'published', 'inactive')", name='ck_activity_status'
        ),
    )

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    type_id = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'draft'"))
    # {"packages": [...]}
    config = Column(JSON, nullable=False, default=dict)
    id = Column(Integer, primary_key=True)
    availability_template_id = Column(ForeignKey('availability_templates.id', ondelete='SET NULL'))
    duration_minutes = Column(Integer)
    capacity_override = Column(Integer)
    price_from = Column(Float)
    description = Column(Text)
    city = Column(Text)
    address = Column(Text)
    thumbnail_url = Column(Text)

    business = relationship('Businesses', back_populates='activities')
    availability_template = relationship('AvailabilityTemplates', back_populates='activities')
    bookings = relationship('Bookings', back_populates='activity')


class SlotCapacity(Base):
    """Per-slot seat counter; guards the capacity check-and-insert."""

    __tablename__ = 'slot_capacity'
    __table_args__ = (
        CheckConstraint('booked_seats >= 0', name='ck_slot_booked_non_negative'),
    )

    id = Column(Text, primary_key=True)  # "{activity_id}_{YYYY-MM-DD}_{HHMM}" in business local time
    activity_id = Column(ForeignKey('activities.id', ondelete='CASCADE'), nullable=False)
    slot_start = Column(DateTime, nullable=False)
    booked_seats = Column(Integer, nullable=False, server_default=text('0'))


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        CheckConstraint('participants_count >= 1', name='ck_booking_participants_positive'),
        CheckConstraint(
            "status IN ('active', 'cancelled', 'completed')", name='ck_booking_status'
        ),
        Index('ix_booking_activity_slot', 'activity_id', 'slot_start', 'status'),
        Index('ix_booking_user_slot', 'user_id', 'slot_start'),
        Index('ix_booking_business_slot', 'business_id', 'slot_start'),
    )

    activity_id = Column(ForeignKey('activities.id'), nullable=False)
    business_id = Column(ForeignKey('businesses.id'), nullable=False)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    slot_start = Column(DateTime, nullable=False)  # UTC, naive
    duration_minutes = Column(Integer, nullable=False)
    participants_count = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'active'"))
    activity_snapshot = Column(JSON, nullable=False)
    business_snapshot = Column(JSON, nullable=False)
    selection_snapshot = Column(JSON, nullable=False)
    price_snapshot = Column(JSON, nullable=False)
    id = Column(Integer, primary_key=True)
    payment_amount = Column(Float)
    payment_currency = Column(Text)
    cancel_reason = Column(Text)
    cancelled_at = Column(DateTime)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    activity = relationship('Activities', back_populates='bookings')
    user = relationship('Users', back_populates='bookings')
