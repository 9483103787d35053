"""
Pytest fixtures for the Origin API tests.

Settings are read at import time, so the environment is prepared here before
anything from origin_api is imported: a throwaway SQLite file, a test secret,
suppressed mail and rate limiting off.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="origin-api-tests-")
os.environ["DATABASE_URL_OVERRIDE"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("INITIAL_ADMIN_EMAIL", None)
os.environ.pop("INITIAL_ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

import origin_api.models  # noqa: F401  registers every table on Base.metadata
from origin_api.database import Base, SessionLocal, engine
from origin_api.main import app
from origin_api.core.security import hash_password
from origin_api.models import Product, User
from origin_api.services import auth_service, email_service
from origin_api.services.shop_service import to_money

DEFAULT_PASSWORD = "S3cure-pass!"


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create the schema once for the whole run."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db():
    """A session for the test body. Every table is emptied afterwards."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture(scope="function")
def client(db):
    with TestClient(app) as test_client:
        yield test_client


# ── Mail ──────────────────────────────────────────────────────────────────────

class Outbox:
    """Records what would have been emailed."""

    def __init__(self):
        self.sent = []

    def otps_for(self, email: str, purpose: str = None) -> list[str]:
        return [
            m["otp"] for m in self.sent
            if m["to"] == email and "otp" in m and (purpose is None or m["purpose"] == purpose)
        ]

    def last_otp(self, email: str, purpose: str = None) -> str:
        codes = self.otps_for(email, purpose)
        assert codes, f"no OTP was sent to {email}"
        return codes[-1]


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()

    async def fake_send_otp_email(email_to, otp, purpose):
        box.sent.append({"to": email_to, "otp": otp, "purpose": purpose})

    async def fake_send_account_created_email(email_to, first_name, last_name):
        box.sent.append({"to": email_to, "kind": "account_created"})

    monkeypatch.setattr(email_service, "send_otp_email", fake_send_otp_email)
    monkeypatch.setattr(email_service, "send_account_created_email", fake_send_account_created_email)
    return box


@pytest.fixture
def failing_mail(monkeypatch):
    """Every outgoing mail raises, as if the SMTP server were down."""
    async def broken(*args, **kwargs):
        raise ConnectionError("SMTP server unavailable")

    monkeypatch.setattr(email_service, "send_otp_email", broken)
    monkeypatch.setattr(email_service, "send_account_created_email", broken)


# ── Users ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_user(db):
    def _make_user(email="user@example.com", password=DEFAULT_PASSWORD, role="client", is_verified=True):
        user = User(
            email=email,
            hashed_password=hash_password(password),
            role=role,
            first_name="Test",
            last_name=role.capitalize(),
            is_verified=is_verified,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {auth_service.issue_token(user)}"}


@pytest.fixture
def headers_for():
    """headers_for(user) -> Authorization header with a fresh token."""
    return bearer


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@origin.test", role="admin")


@pytest.fixture
def controller(make_user):
    return make_user(email="controller@origin.test", role="controller")


@pytest.fixture
def client_user(make_user):
    return make_user(email="client@origin.test", role="client")


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def controller_headers(controller):
    return bearer(controller)


@pytest.fixture
def client_headers(client_user):
    return bearer(client_user)


# ── Shop ──────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_product(db):
    def _make_product(name="Widget", price=9.99, stock=10, sold=0, category="Hardware"):
        product = Product(
            name=name,
            description=f"{name} for tests",
            category=category,
            price=to_money(price),
            stock_quantity=stock,
            sold_quantity=sold,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make_product
