import httpx
import openai
import pytest
from src.app import create_app
from src.models import db, AdminNotification, Booking, Company


def test_create_booking_notifies_admins(client, db_session, make_user, sms_service, booking_payload):
    """A new booking is stored, admins get an SMS and a web notification is written."""
    make_user('admin', phone='0911000001')
    make_user('superadmin', phone='0911000002')

    response = client.post('/api/bookings', json=booking_payload)

    assert response.status_code == 201
    data = response.get_json()
    assert data['approval_status'] == 'pending'
    assert data['payment_status'] == 'pending'
    assert data['start_date'] == '2024-09-01'

    booking = db_session.get(Booking, data['id'])
    assert booking.guest_name == 'Chaltu Tadesse'

    assert sms_service.send_sms.call_count == 2
    sms_text = sms_service.send_sms.call_args.args[1]
    assert f"https://rentals.example.test/admin/manage-dormitory-bookings#{booking.id}" in sms_text

    notification = db_session.query(AdminNotification).one()
    assert notification.related_id == booking.id
    assert notification.type == 'new_dormitory_booking'
    assert notification.link == f"/admin/manage-dormitory-bookings#{booking.id}"


def test_create_booking_survives_sms_failure(client, db_session, make_user, sms_service, booking_payload):
    """Notification problems never fail the booking request."""
    make_user('admin', phone='0911000001')
    sms_service.send_sms.side_effect = RuntimeError('gateway down')

    response = client.post('/api/bookings', json=booking_payload)

    assert response.status_code == 201
    assert db_session.query(AdminNotification).count() == 1


def test_create_booking_survives_notification_store_failure(client, db_session, make_user,
                                                           sms_service, booking_payload):
    """A broken notification table is logged, the booking still succeeds."""
    make_user('admin', phone='0911000001')
    AdminNotification.__table__.drop(db.engine)

    response = client.post('/api/bookings', json=booking_payload)

    assert response.status_code == 201
    assert response.get_json()['guest_name'] == 'Chaltu Tadesse'
    assert db_session.query(Booking).count() == 1
    sms_service.send_sms.assert_called_once()


@pytest.mark.parametrize('changes, message', [
    ({'booking_category': 'parking'}, 'booking_category'),
    ({'items': []}, 'item'),
    ({'start_date': 'not a date'}, 'valid dates'),
    ({'end_date': '2024-08-01'}, 'before'),
    ({'total_cost': 'lots'}, 'number'),
    ({'total_cost': -5}, 'negative'),
    ({'guest_name': None}, 'guest_name'),
])
def test_create_booking_validation(client, db_session, sms_service, booking_payload, changes, message):
    booking_payload.update(changes)

    response = client.post('/api/bookings', json=booking_payload)

    assert response.status_code == 400
    assert message in response.get_json()['error']
    assert db_session.query(Booking).count() == 0
    sms_service.send_sms.assert_not_called()


def test_get_booking(client, make_booking):
    booking = make_booking()

    response = client.get(f'/api/bookings/{booking.id}')

    assert response.status_code == 200
    assert response.get_json()['guest_name'] == 'Abebe Kebede'
    assert client.get('/api/bookings/missing').status_code == 404


def test_approve_dormitory_booking_alerts_keyholders(client, make_user, make_booking, sms_service):
    make_user('keyholder', phone='0922000001')
    make_user('admin', phone='0911000001')
    booking = make_booking('dormitory')

    response = client.post(f'/api/bookings/{booking.id}/approve')

    assert response.status_code == 200
    assert response.get_json()['approval_status'] == 'approved'
    sms_service.send_sms.assert_called_once()
    to, message = sms_service.send_sms.call_args.args
    assert to == '0922000001'
    assert message.startswith('Booking Approved!')
    assert 'Check-in: Aug 18' in message


def test_approve_facility_booking_sends_nothing(client, make_user, make_booking, sms_service):
    make_user('keyholder', phone='0922000001')
    booking = make_booking('facility')

    response = client.post(f'/api/bookings/{booking.id}/approve')

    assert response.status_code == 200
    sms_service.send_sms.assert_not_called()


def test_status_can_only_change_from_pending(client, make_booking):
    booking = make_booking()

    assert client.post(f'/api/bookings/{booking.id}/reject').status_code == 200
    response = client.post(f'/api/bookings/{booking.id}/approve')

    assert response.status_code == 409
    assert 'already rejected' in response.get_json()['error']


def test_payment_status(client, make_booking):
    booking = make_booking()

    response = client.post(f'/api/bookings/{booking.id}/payment', json={'payment_status': 'paid'})
    assert response.status_code == 200
    assert response.get_json()['payment_status'] == 'paid'

    response = client.post(f'/api/bookings/{booking.id}/payment', json={'payment_status': 'maybe'})
    assert response.status_code == 400


def test_list_bookings_search_sort_and_page(client, make_booking):
    make_booking(guest_name='Chaltu', total_cost=300.0)
    make_booking(guest_name='Abdi', total_cost=100.0)
    make_booking(guest_name='Bontu', total_cost=200.0)
    make_booking('facility', total_cost=50.0)

    response = client.get('/api/bookings?category=dormitory&sort=guest_name&per_page=2')
    data = response.get_json()
    assert [b['guest_name'] for b in data['items']] == ['Abdi', 'Bontu']
    assert data['page_count'] == 2
    assert data['total_items'] == 3
    assert data['can_next_page'] is True

    response = client.get('/api/bookings?category=dormitory&sort=total_cost&direction=descending&page=1&per_page=2')
    data = response.get_json()
    assert [b['total_cost'] for b in data['items']] == [100.0]
    assert data['can_previous_page'] is True

    response = client.get('/api/bookings?search=bon')
    assert [b['guest_name'] for b in response.get_json()['items']] == ['Bontu']


def test_notifications_endpoints(client, db_session):
    db_session.add_all([
        AdminNotification(message='one', type='new_facility_booking', recipient_role='admin'),
        AdminNotification(message='two', type='new_dormitory_booking', recipient_role='admin'),
        AdminNotification(message='other', type='new_dormitory_booking', recipient_role='keyholder'),
    ])
    db_session.commit()
    first = db_session.query(AdminNotification).filter_by(message='one').one()

    response = client.get('/api/notifications?role=superadmin')
    data = response.get_json()
    assert {n['message'] for n in data['notifications']} == {'one', 'two'}
    assert data['unread'] == 2

    response = client.post(f'/api/notifications/{first.id}/read')
    assert response.get_json()['is_read'] is True

    response = client.post('/api/notifications/read-all?role=admin')
    assert response.get_json() == {'updated': 1}

    assert client.post('/api/notifications/9999/read').status_code == 404


def test_company_registration_and_approval(client, db_session):
    response = client.post('/api/companies', json={
        'name': 'Oromia Coffee PLC',
        'email': 'Info@OromiaCoffee.et',
        'contact_person': 'Lensa'
    })
    assert response.status_code == 201
    company = response.get_json()
    assert company['approval_status'] == 'pending'

    duplicate = client.post('/api/companies', json={'name': 'Other', 'email': 'info@oromiacoffee.et'})
    assert duplicate.status_code == 409

    assert client.post('/api/companies', json={'name': 'No Email'}).status_code == 400

    response = client.post(f"/api/companies/{company['id']}/approve")
    assert response.get_json()['approval_status'] == 'approved'
    assert db_session.get(Company, company['id']).approval_status == 'approved'

    response = client.get('/api/companies?status=approved')
    assert [c['name'] for c in response.get_json()['companies']] == ['Oromia Coffee PLC']

    assert client.post(f"/api/companies/{company['id']}/archive").status_code == 404
    assert client.post('/api/companies/missing/reject').status_code == 404


def test_translate(client, app, mocker):
    translator = app.extensions['rental']['translator']
    mocker.patch.object(translator, 'translate', return_value={'Oromo': 'Akkam', 'Amharic': 'ሰላም'})

    response = client.post('/api/translate', json={'text': 'Hello'})

    assert response.status_code == 200
    assert response.get_json() == {'Oromo': 'Akkam', 'Amharic': 'ሰላም'}
    translator.translate.assert_called_once_with('Hello', 'English')


def test_translate_not_configured(client):
    response = client.post('/api/translate', json={'text': 'Hello'})

    assert response.status_code == 502
    assert 'not configured' in response.get_json()['error']


def test_health_check(client):
    response = client.get('/health')

    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'healthy'
    assert data['components'] == {'database': 'healthy', 'sms_service': 'healthy'}


def test_translate_upstream_failure_maps_to_502(client, app, mocker):
    mocker.patch('tenacity.nap.time.sleep')
    translator = app.extensions['rental']['translator']
    translator.client = mocker.MagicMock()
    translator.client.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')
    )

    response = client.post('/api/translate', json={'text': 'Hello'})

    assert response.status_code == 502
    assert 'Translation service error' in response.get_json()['error']


def test_create_app_applies_collation_locale(settings, sms_service, mocker):
    configure_collation = mocker.patch('src.app.configure_collation')

    create_app(settings.with_overrides(collation_locale='en_US.UTF-8'),
               sms_service=sms_service, testing=True)

    configure_collation.assert_called_once_with('en_US.UTF-8')
