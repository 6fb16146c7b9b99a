import pytest
from datetime import date
from unittest.mock import Mock

from src.app import create_app
from src.config import Settings
from src.models import db, User, Booking
from src.features.sms.code import SMSService, SmsResult


@pytest.fixture
def settings():
    return Settings(
        database_url='sqlite:///:memory:',
        sms_api_key='test_key',
        sms_sender_id='OETC',
        app_base_url='https://rentals.example.test',
    )


@pytest.fixture
def sms_service():
    """SMS service double that records calls and always reports success."""
    service = Mock(spec=SMSService)
    service.enabled = True
    service.send_sms.side_effect = lambda to, message: SmsResult.sent(to)
    return service


@pytest.fixture
def app(settings, sms_service):
    app = create_app(settings, sms_service=sms_service, testing=True)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def db_session(app):
    return db.session


@pytest.fixture
def make_user(db_session):
    def _make_user(role, phone=None, email=None):
        count = db_session.query(User).count()
        user = User(
            email=email or f'{role}{count}@example.test',
            name=f'{role.title()} {count}',
            role=role,
            phone=phone
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_booking(db_session):
    def _make_booking(category='dormitory', **overrides):
        values = {
            'booking_category': category,
            'guest_name': 'Abebe Kebede' if category == 'dormitory' else None,
            'company_name': None if category == 'dormitory' else 'Oromia Coffee PLC',
            'items': [{'id': 'r101', 'name': 'Room 101', 'item_type': 'dormitory'}],
            'start_date': date(2024, 8, 18),
            'end_date': date(2024, 8, 20),
            'total_cost': 1500.0,
        }
        values.update(overrides)
        booking = Booking(**values)
        db_session.add(booking)
        db_session.commit()
        return booking
    return _make_booking
