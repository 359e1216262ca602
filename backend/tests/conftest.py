"""
Pytest fixtures for pharmacy backend tests.

Provides test database setup, two tenants with branches, one user per role
and session-token helpers.
"""

import pytest

from pharmacy import create_app
from pharmacy.extensions import db
from pharmacy.models import Branch, Pharmacy
from pharmacy.permissions import Principal, Role
from pharmacy.services.auth_service import create_user
from pharmacy.services.session_service import create_session


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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


# =============================================================================
# TENANTS
# =============================================================================

@pytest.fixture(scope='function')
def pharmacy_a(db_session):
    """Pharmacy A (first tenant)."""
    pharmacy = Pharmacy(name="Green Cross", code="GC", is_active=True)
    db_session.add(pharmacy)
    db_session.commit()
    return pharmacy


@pytest.fixture(scope='function')
def pharmacy_b(db_session):
    """Pharmacy B (second tenant)."""
    pharmacy = Pharmacy(name="Blue Mortar", code="BM", is_active=True)
    db_session.add(pharmacy)
    db_session.commit()
    return pharmacy


@pytest.fixture(scope='function')
def branch_a1(db_session, pharmacy_a):
    branch = Branch(pharmacy_id=pharmacy_a.id, name="Main Street", code="A1")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_a2(db_session, pharmacy_a):
    branch = Branch(pharmacy_id=pharmacy_a.id, name="Harbour Road", code="A2")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b1(db_session, pharmacy_b):
    branch = Branch(pharmacy_id=pharmacy_b.id, name="Market Square", code="B1")
    db_session.add(branch)
    db_session.commit()
    return branch


# =============================================================================
# USERS
# =============================================================================

def make_user(role, email, pharmacy_id=None, branch_id=None, is_manager=False, permissions=None, name=None):
    """Bootstrap a user without hierarchy checks."""
    return create_user(
        name=name or email.split("@")[0],
        email=email,
        password=PASSWORD,
        role=role,
        pharmacy_id=pharmacy_id,
        branch_id=branch_id,
        is_manager=is_manager,
        permissions=permissions,
    )


@pytest.fixture(scope='function')
def super_admin(db_session):
    return make_user(Role.SUPER_ADMIN, "root@platform.test")


@pytest.fixture(scope='function')
def admin_a(db_session, pharmacy_a):
    return make_user(Role.ADMIN, "admin@gc.test", pharmacy_id=pharmacy_a.id)


@pytest.fixture(scope='function')
def admin_b(db_session, pharmacy_b):
    return make_user(Role.ADMIN, "admin@bm.test", pharmacy_id=pharmacy_b.id)


@pytest.fixture(scope='function')
def pharmacist_a(db_session, branch_a1):
    return make_user(Role.PHARMACIST, "pharmacist@gc.test", branch_id=branch_a1.id)


@pytest.fixture(scope='function')
def cashier_a(db_session, branch_a1):
    return make_user(Role.CASHIER, "cashier@gc.test", branch_id=branch_a1.id)


@pytest.fixture(scope='function')
def cashier_a2(db_session, branch_a2):
    return make_user(Role.CASHIER, "cashier2@gc.test", branch_id=branch_a2.id)


@pytest.fixture(scope='function')
def cashier_b(db_session, branch_b1):
    return make_user(Role.CASHIER, "cashier@bm.test", branch_id=branch_b1.id)


# =============================================================================
# SESSIONS
# =============================================================================

def get_token(user) -> str:
    """Open a session for a user and return the plaintext bearer token."""
    _session, token = create_session(user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    return auth_headers(get_token(user))


def principal_of(user) -> Principal:
    return Principal.from_user(user)


@pytest.fixture(scope='function')
def super_admin_headers(super_admin):
    return headers_for(super_admin)


@pytest.fixture(scope='function')
def admin_headers(admin_a):
    return headers_for(admin_a)


@pytest.fixture(scope='function')
def pharmacist_headers(pharmacist_a):
    return headers_for(pharmacist_a)


@pytest.fixture(scope='function')
def cashier_headers(cashier_a):
    return headers_for(cashier_a)
