import pytest


@pytest.fixture(scope="function")
def client(app):
    """Create a test client for the Flask application."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def booking_payload():
    return {
        'booking_category': 'dormitory',
        'guest_name': 'Chaltu Tadesse',
        'phone': '0911223344',
        'items': [{'id': 'r12', 'name': 'Room 12', 'item_type': 'dormitory'}],
        'start_date': '2024-09-01',
        'end_date': '2024-09-03',
        'total_cost': 900,
    }
