"""
Tests for the notification system feature
"""

import threading

import pytest
from datetime import date
from unittest.mock import Mock

from src.exceptions import NotificationNotFound
from src.features.phone_directory.code import PhoneDirectory
from src.features.sms.code import SmsResult
from src.models import db, AdminNotification, Booking
from .code import BookingNotifier, NotificationRepository


@pytest.fixture
def notifications(db_session):
    return NotificationRepository(db_session)


@pytest.fixture
def notifier(db_session, sms_service, notifications):
    return BookingNotifier(
        directory=PhoneDirectory(db_session),
        sms_service=sms_service,
        notifications=notifications,
        base_url='https://rentals.example.test'
    )


def sent_numbers(sms_service):
    return sorted(call.args[0] for call in sms_service.send_sms.call_args_list)


@pytest.mark.asyncio
async def test_new_dormitory_booking(notifier, sms_service, db_session, make_user, make_booking):
    make_user('admin', phone='0911000001')
    make_user('superadmin', phone='0911000002')
    booking = make_booking('dormitory')

    report = await notifier.notify_admins_of_new_booking(booking)

    assert sent_numbers(sms_service) == ['0911000001', '0911000002']
    assert report.sent_count == 2
    assert report.error is None

    notification = db_session.query(AdminNotification).one()
    assert notification.id == report.notification_id
    assert notification.type == 'new_dormitory_booking'
    assert notification.link == f'/admin/manage-dormitory-bookings#{booking.id}'
    assert notification.recipient_role == 'admin'
    assert notification.is_read is False
    assert notification.related_id == booking.id
    assert 'Abebe Kebede' in notification.message
    assert 'Room 101' in notification.message
    assert f'ID: {booking.id[:6]}...' in notification.message


@pytest.mark.asyncio
async def test_sms_carries_absolute_link(notifier, sms_service, make_user, make_booking):
    make_user('admin', phone='0911000001')
    booking = make_booking('facility', items=[{'name': 'Hall A'}, {'name': 'Hall B'}])

    await notifier.notify_admins_of_new_booking(booking)

    message = sms_service.send_sms.call_args.args[1]
    assert message.startswith('New Booking!')
    assert 'Item: Hall A, Hall B' in message
    assert 'Customer: Oromia Coffee PLC' in message
    assert f'https://rentals.example.test/admin/manage-facility-bookings#{booking.id}' in message


@pytest.mark.asyncio
async def test_facility_booking_notification(notifier, db_session, make_booking):
    booking = make_booking('facility')

    await notifier.notify_admins_of_new_booking(booking)

    notification = db_session.query(AdminNotification).one()
    assert notification.type == 'new_facility_booking'
    assert notification.link == f'/admin/manage-facility-bookings#{booking.id}'


@pytest.mark.asyncio
async def test_notification_written_even_when_sms_fails(notifier, sms_service, db_session,
                                                        make_user, make_booking):
    make_user('admin', phone='0911000001')
    make_user('admin', phone='0911000002')

    def flaky(to, message):
        if to == '0911000001':
            raise RuntimeError('socket closed')
        return SmsResult.failed(to, 'http_500')
    sms_service.send_sms.side_effect = flaky

    report = await notifier.notify_admins_of_new_booking(make_booking())

    assert [r.status for r in report.sms_results] == ['failed', 'failed']
    assert db_session.query(AdminNotification).count() == 1


@pytest.mark.asyncio
async def test_directory_failure_is_swallowed(sms_service, notifications, make_booking):
    directory = Mock(spec=PhoneDirectory)
    directory.get_admin_phone_numbers.side_effect = RuntimeError('store offline')
    notifier = BookingNotifier(directory, sms_service, notifications)

    report = await notifier.notify_admins_of_new_booking(make_booking())

    assert report.error == 'store offline'
    assert report.notification_id is None
    sms_service.send_sms.assert_not_called()


@pytest.mark.asyncio
async def test_dorm_approval_sends_to_keyholders(notifier, sms_service, db_session,
                                                 make_user, make_booking):
    make_user('keyholder', phone='0922000001')
    make_user('keyholder', phone='0922000002')
    make_user('admin', phone='0911000001')
    booking = make_booking('dormitory', start_date=date(2024, 9, 5))

    report = await notifier.notify_keyholders_of_dorm_approval(booking)

    assert sent_numbers(sms_service) == ['0922000001', '0922000002']
    assert report.sent_count == 2
    message = sms_service.send_sms.call_args.args[1]
    assert message == (
        "Booking Approved!\nGuest: Abebe Kebede\nRoom: Room 101\n"
        "Check-in: Sep 5\nPlease prepare for key handover."
    )
    assert db_session.query(AdminNotification).count() == 0


@pytest.mark.asyncio
async def test_dorm_approval_ignores_facility_bookings(notifier, sms_service, db_session,
                                                       make_user, make_booking):
    make_user('keyholder', phone='0922000001')

    report = await notifier.notify_keyholders_of_dorm_approval(make_booking('facility'))

    assert report.skipped_reason == 'not_dormitory'
    sms_service.send_sms.assert_not_called()
    assert db_session.query(AdminNotification).count() == 0


@pytest.mark.asyncio
async def test_dorm_approval_without_keyholders(notifier, sms_service, make_booking):
    report = await notifier.notify_keyholders_of_dorm_approval(make_booking('dormitory'))

    assert report.skipped_reason == 'no_recipients'
    sms_service.send_sms.assert_not_called()


def test_dorm_approval_message_defaults():
    booking = Mock(guest_name=None, items=[{'name': 'Room 7'}], start_date='garbage')

    message = BookingNotifier.dorm_approval_message(booking)

    assert 'Guest: Unknown Guest' in message
    assert 'Check-in: N/A' in message


def test_mark_as_read(notifications):
    created = notifications.create('hello', 'new_facility_booking', 'abc', 'admin', '/x')

    assert notifications.unread_count('admin') == 1
    notifications.mark_as_read(created.id)
    assert notifications.unread_count('admin') == 0


def test_mark_unknown_notification(notifications):
    with pytest.raises(NotificationNotFound):
        notifications.mark_as_read(999)


def test_list_for_role_includes_generic_admin(notifications):
    notifications.create('for admins', 'new_facility_booking', 'a', 'admin')
    notifications.create('for superadmins', 'new_facility_booking', 'b', 'superadmin')
    notifications.create('for keyholders', 'new_dormitory_booking', 'c', 'keyholder')

    messages = {n.message for n in notifications.list_for_role('superadmin')}

    assert messages == {'for admins', 'for superadmins'}
    assert notifications.mark_all_as_read('superadmin') == 2
    assert notifications.unread_count('keyholder') == 1


@pytest.mark.asyncio
async def test_failed_notification_write_leaves_session_usable(notifier, db_session, make_user,
                                                               make_booking):
    make_user('admin', phone='0911000001')
    booking = make_booking()
    AdminNotification.__table__.drop(db.engine)

    report = await notifier.notify_admins_of_new_booking(booking)

    assert report.error is not None
    assert report.notification_id is None
    assert report.sent_count == 1
    # The committed booking can still be read through the same session
    assert db_session.get(Booking, booking.id).guest_name == 'Abebe Kebede'


@pytest.mark.asyncio
async def test_sends_are_in_flight_together(notifier, sms_service, make_user, make_booking):
    make_user('admin', phone='0911000001')
    make_user('superadmin', phone='0911000002')
    # Each send waits for the other; a one-at-a-time loop breaks the barrier
    barrier = threading.Barrier(2, timeout=5)

    def send(to, message):
        barrier.wait()
        return SmsResult.sent(to)
    sms_service.send_sms.side_effect = send

    report = await notifier.notify_admins_of_new_booking(make_booking())

    assert [r.status for r in report.sms_results] == ['sent', 'sent']


@pytest.mark.asyncio
async def test_all_sends_settle_when_one_raises(notifier, sms_service, make_user, make_booking):
    make_user('admin', phone='0911000001')
    make_user('superadmin', phone='0911000002')
    barrier = threading.Barrier(2, timeout=5)

    def send(to, message):
        barrier.wait()
        if to == '0911000001':
            raise ConnectionError('reset by peer')
        return SmsResult.sent(to)
    sms_service.send_sms.side_effect = send

    report = await notifier.notify_admins_of_new_booking(make_booking())

    results = {r.to: r for r in report.sms_results}
    assert results['0911000001'].status == 'failed'
    assert 'reset by peer' in results['0911000001'].reason
    assert results['0911000002'].status == 'sent'
    assert report.notification_id is not None
