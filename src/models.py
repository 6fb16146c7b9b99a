import uuid
from datetime import datetime

import pytz
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Float, JSON, Date

db = SQLAlchemy()

USER_ROLES = ('admin', 'superadmin', 'keyholder', 'store_manager', 'company_representative')
BOOKING_CATEGORIES = ('dormitory', 'facility')
APPROVAL_STATUSES = ('pending', 'approved', 'rejected')
PAYMENT_STATUSES = ('pending', 'pending_transfer', 'awaiting_verification', 'paid', 'failed')
NOTIFICATION_TYPES = ('new_dormitory_booking', 'new_facility_booking')


def utcnow():
    return datetime.now(pytz.UTC)


def new_id():
    return uuid.uuid4().hex


class User(db.Model):
    """A staff member or company representative."""
    __tablename__ = 'users'

    id = Column(String(32), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(100), nullable=True)
    role = Column(String(30), nullable=False, index=True)
    phone = Column(String(30), nullable=True)  # optional, blank numbers are never notified
    company_id = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'phone': self.phone,
            'company_id': self.company_id,
        }


class Company(db.Model):
    """A registered company that can book facilities."""
    __tablename__ = 'companies'

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(30), nullable=True)
    approval_status = Column(String(20), nullable=False, default='pending')
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contact_person': self.contact_person,
            'email': self.email,
            'phone': self.phone,
            'approval_status': self.approval_status,
        }


class Booking(db.Model):
    """A rental request for dormitory rooms or facility halls."""
    __tablename__ = 'bookings'

    id = Column(String(32), primary_key=True, default=new_id)
    booking_category = Column(String(20), nullable=False)  # 'dormitory' or 'facility'
    guest_name = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=True)
    company_id = Column(String(32), nullable=True)
    phone = Column(String(30), nullable=True)
    items = Column(JSON, nullable=False, default=list)  # [{'id', 'name', 'item_type'}]
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_cost = Column(Float, nullable=False, default=0)
    approval_status = Column(String(20), nullable=False, default='pending')
    payment_status = Column(String(30), nullable=False, default='pending')
    notes = Column(Text, nullable=True)
    booked_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'booking_category': self.booking_category,
            'guest_name': self.guest_name,
            'company_name': self.company_name,
            'company_id': self.company_id,
            'phone': self.phone,
            'items': self.items or [],
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'total_cost': self.total_cost,
            'approval_status': self.approval_status,
            'payment_status': self.payment_status,
            'notes': self.notes,
            'booked_at': self.booked_at.isoformat() if self.booked_at else None,
        }


class AdminNotification(db.Model):
    """In-app alert shown on a role's dashboard."""
    __tablename__ = 'admin_notifications'

    id = Column(Integer, primary_key=True)
    message = Column(Text, nullable=False)
    type = Column(String(40), nullable=False)
    related_id = Column(String(32), nullable=True)
    recipient_role = Column(String(30), nullable=False, index=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    link = Column(String(255), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'message': self.message,
            'type': self.type,
            'related_id': self.related_id,
            'recipient_role': self.recipient_role,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'link': self.link,
        }
