"""
Pytest fixtures for AccountsForge backend tests.

Provides test database setup, principals for each role, and the test client.
"""

import pytest
from accountsforge import create_app
from accountsforge.extensions import db
from accountsforge.models import Role
from accountsforge.policy import Principal
from accountsforge.services import auth_service, profile_service, settings_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_PROFILE_ROLE': 'employee',
        'DEFAULT_COMMISSION_RATE': '5.00',
        'BCRYPT_LOG_ROUNDS': 4,
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

        settings_service.ensure_defaults_seeded()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_principal(email: str, role: Role, full_name: str = "Test User") -> Principal:
    """Create identity + profile with the given role."""
    identity = auth_service.register_identity(email, PASSWORD, full_name=full_name)
    profile = profile_service.ensure_profile(identity, role=role)
    return Principal(user_id=profile.user_id, role=profile.role)


@pytest.fixture(scope='function')
def admin(db_session):
    return make_principal("admin@test.local", Role.ADMIN, "Admin")


@pytest.fixture(scope='function')
def employee(db_session):
    return make_principal("alice@test.local", Role.EMPLOYEE, "Alice")


@pytest.fixture(scope='function')
def other_employee(db_session):
    return make_principal("carol@test.local", Role.EMPLOYEE, "Carol")


@pytest.fixture(scope='function')
def salesman(db_session):
    return make_principal("bob@test.local", Role.SALESMAN, "Bob")


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
    return auth_headers(get_auth_token(client, "admin@test.local"))


@pytest.fixture(scope='function')
def employee_headers(client, employee):
    return auth_headers(get_auth_token(client, "alice@test.local"))


@pytest.fixture(scope='function')
def other_employee_headers(client, other_employee):
    return auth_headers(get_auth_token(client, "carol@test.local"))


@pytest.fixture(scope='function')
def salesman_headers(client, salesman):
    return auth_headers(get_auth_token(client, "bob@test.local"))
