"""
Pytest fixtures for TIMS backend tests.

Provides test database setup, one user per role, bearer-token headers,
and the test client.
"""

import pytest
from tims import create_app
from tims.extensions import db
from tims.models import User, Supplier, InventoryItem
from tims.services.auth_service import hash_password
from tims.services import session_service
from tims.services import inventory_service


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STOCK_RETRY_BACKOFF_SECONDS': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


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


def _make_user(db_session, password_hash, username: str, role: str) -> User:
    user = User(
        username=username,
        email=f"{username}@tims.local",
        full_name=f"{username.title()} User",
        password_hash=password_hash,
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    return _make_user(db_session, password_hash, "admin", "admin")


@pytest.fixture(scope='function')
def manager_user(db_session, password_hash):
    return _make_user(db_session, password_hash, "manager", "manager")


@pytest.fixture(scope='function')
def staff_user(db_session, password_hash):
    return _make_user(db_session, password_hash, "staff", "staff")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user: User) -> dict:
    _session, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return headers_for(manager_user)


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    return headers_for(staff_user)


@pytest.fixture(scope='function')
def supplier(db_session):
    """An active supplier with no orders."""
    supplier = Supplier(
        name="Nordic Telecom Supply",
        contact_person="Erik Lund",
        email="sales@nordictelecom.example",
        phone="+46 8 555 0100",
        status="active",
    )
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def make_item(db_session, admin_user):
    """Factory: create an item through the service so the initial purchase is logged."""
    def _make(**overrides) -> InventoryItem:
        fields = {
            "name": "Cisco ISR 4331 Router",
            "category": "Routers",
            "status": "available",
            "stock_level": 6,
            "reorder_point": 5,
        }
        fields.update(overrides)
        return inventory_service.create_item(fields=fields, user_id=admin_user.id)
    return _make
