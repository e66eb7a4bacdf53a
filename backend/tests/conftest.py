"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Must be set before the application modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["OUTBOX_PROCESSOR_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOGIN_RATE_LIMIT"] = "5/minute"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, Branch, Franchise, MenuItem, RestaurantTable, Role, Staff
from rest_api.seed import DEMO_FRANCHISE_CODE, seed
from rest_api.services.domain import IdentityResolver
from rest_api.services.permissions import BranchScope, capability_cache
from shared.infrastructure.db import get_db
from shared.security.rate_limit import limiter


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)
    capability_cache.clear()

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        capability_cache.clear()


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_session):
    """
    Seed the demo franchise and return its ids.

    Keys: franchise_id, branch_id, roles (name -> id), staff (email -> id),
    tables (number -> id), menu (name -> id).
    """
    seed(db_session)
    franchise = db_session.scalar(select(Franchise).where(Franchise.code == DEMO_FRANCHISE_CODE))
    branch = db_session.scalar(select(Branch).where(Branch.franchise_id == franchise.id))
    return {
        "franchise_id": franchise.id,
        "branch_id": branch.id,
        "roles": {r.name: r.id for r in db_session.scalars(select(Role))},
        "staff": {s.email: s.id for s in db_session.scalars(select(Staff))},
        "tables": {t.table_number: t.id for t in db_session.scalars(select(RestaurantTable))},
        "menu": {m.name_of_item: m.id for m in db_session.scalars(select(MenuItem))},
    }


def login(client, email: str, password: str) -> dict:
    """Log in and return Authorization headers."""
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def owner_headers(client, seeded):
    return login(client, "owner@demo.com", "owner123")


@pytest.fixture
def manager_headers(client, seeded):
    return login(client, "manager@demo.com", "manager123")


@pytest.fixture
def waiter_headers(client, seeded):
    return login(client, "waiter@demo.com", "waiter123")


@pytest.fixture
def kitchen_headers(client, seeded):
    return login(client, "kitchen@demo.com", "kitchen123")


def staff_context(db_session, email: str):
    """Resolve a seeded staff member to a StaffContext without going through HTTP."""
    from rest_api.models import AuthPrincipal

    principal = db_session.scalar(select(AuthPrincipal).where(AuthPrincipal.email == email))
    return IdentityResolver(db_session).resolve(principal.id, refresh=True)


def single_scope(seeded) -> BranchScope:
    return BranchScope.single(seeded["franchise_id"], seeded["branch_id"])
