import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from afriroots.accounts import AccountStore, AuthService
from afriroots.api import app
from afriroots.auth import get_auth_service, get_db
from afriroots.database import init_db
from afriroots.passwords import PasswordHasher
from afriroots.tokens import TokenIssuer

TEST_SECRET = "test-secret"


@pytest.fixture
def session_local():
    """Provide an isolated in-memory database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def hasher():
    # minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer():
    return TokenIssuer(TEST_SECRET, lifetime=timedelta(hours=1))


@pytest.fixture
def store(session_local):
    return AccountStore(session_local)


@pytest.fixture
def service(store, hasher, issuer):
    return AuthService(store=store, hasher=hasher, issuer=issuer)


@pytest.fixture
def client(session_local, service):
    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
