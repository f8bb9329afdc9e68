"""
Shared pytest fixtures.

Environment is set before importing app so Config picks up an in-memory
database, inline email delivery and a known admin password.
"""
import os

os.environ['TESTING'] = 'True'
os.environ['SECRET_KEY'] = 'test-secret-key'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['NOTIFY_ASYNC'] = 'False'
os.environ['ADMIN_PASSWORD'] = 'test-admin-password'
os.environ['APP_BASE_URL'] = 'https://meals.test'
os.environ.pop('ADMIN_PASSWORD_HASH', None)

from datetime import timedelta

import pytest

from app import app as flask_app, db, mail, get_local_today, Courier, PickupLocation

ADMIN_PASSWORD = 'test-admin-password'


@pytest.fixture
def app():
    flask_app.config['CRON_SECRET'] = None
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    response = client.post('/api/admin/login', json={'password': ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def outbox(app):
    with mail.record_messages() as messages:
        yield messages


@pytest.fixture
def make_pickup(app):
    def _make(location='Salem', days_ahead=7, active=True, pickup_date=None):
        pickup = PickupLocation(
            pickup_date=pickup_date or get_local_today() + timedelta(days=days_ahead),
            location=location,
            active=active,
        )
        db.session.add(pickup)
        db.session.commit()
        return pickup
    return _make


@pytest.fixture
def make_courier(app):
    def _make(name='Casey Courier', email='casey@example.com', phone='503-555-0100',
              locations=('Salem',), active=True):
        courier = Courier(name=name, email=email, phone=phone, locations=list(locations), active=active)
        db.session.add(courier)
        db.session.commit()
        return courier
    return _make


def signup_payload(pickup_id, **overrides):
    payload = {
        'name': 'Jane Provider',
        'phone': '(503) 555-1234',
        'email': 'jane@example.com',
        'pickupLocationId': pickup_id,
        'mealDescription': 'Vegetable lasagna',
        'freezerFriendly': True,
        'noteToCourier': 'Call when you are close',
        'canBringToSalem': False,
    }
    payload.update(overrides)
    return payload
