"""
Pytest fixtures for Shopbook backend tests.

Provides test database setup, owner/worker fixtures, and test client.
"""

import pytest
from shopbook import create_app
from shopbook.extensions import db
from shopbook.services import auth_service, worker_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'DEFAULT_TIMEZONE': 'Asia/Karachi',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin(db_session):
    """Shop owner A."""
    return auth_service.create_admin(
        email="owner_a@shop.pk",
        password=PASSWORD,
        full_name="Owner A",
        business_name="Shop A",
    )


@pytest.fixture(scope='function')
def other_admin(db_session):
    """Shop owner B, used to check owner isolation."""
    return auth_service.create_admin(
        email="owner_b@shop.pk",
        password=PASSWORD,
        full_name="Owner B",
        business_name="Shop B",
    )


@pytest.fixture(scope='function')
def worker(db_session, admin):
    """Worker under owner A with no permissions."""
    return worker_service.create_worker(
        admin.id,
        email="worker@shop.pk",
        password=PASSWORD,
        full_name="Worker One",
        phone_number="0300-1234567",
    )


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))


@pytest.fixture(scope='function')
def other_admin_headers(client, other_admin):
    return auth_headers(get_auth_token(client, other_admin.email))


@pytest.fixture(scope='function')
def worker_headers(client, worker):
    return auth_headers(get_auth_token(client, worker.email))


@pytest.fixture(scope='function')
def grant(client, admin_headers):
    """Replace a worker's permission matrix through the API."""
    def _grant(worker_id: int, *entries: dict):
        resp = client.put(
            f"/api/workers/{worker_id}/permissions",
            json={"permissions": list(entries)},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.json
        return resp.json["permissions"]
    return _grant
