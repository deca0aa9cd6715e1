import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_TMP = Path(tempfile.mkdtemp(prefix="laundrylocator-tests-"))

os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["APP_ENV"] = "test"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["SITE_URL"] = "https://laundry.example"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["ENRICHED_DIR"] = str(_TMP / "enriched")
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture()
def db():
    from laundrylocator.database import SessionLocal, engine
    from laundrylocator.models import Base
    from laundrylocator.seeds import seed_reference_data

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_reference_data(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    from fastapi.testclient import TestClient

    from laundrylocator.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_laundromat(db):
    from laundrylocator.services import directory

    def _make(**overrides):
        data = {
            "name": "Clean Spin",
            "address": "100 Congress Ave",
            "city": "Austin",
            "state": "TX",
            "zip": "78701",
            "phone": "512-555-0100",
            "latitude": 30.2672,
            "longitude": -97.7431,
            "hours": "Mon-Sun: 7AM-10PM",
            "services": ["coin laundry", "drop-off"],
        }
        data.update(overrides)
        return directory.create_laundromat(db, data)

    return _make


@pytest.fixture()
def make_user(db):
    from laundrylocator.core.security import hash_password
    from laundrylocator.models import User

    def _make(username="alice", email=None, role="user"):
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=hash_password("password123"),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def register(client, username, email=None, password="password123", owner=False):
    response = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "is_business_owner": owner,
        },
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def admin_headers(client):
    return register(client, "admin", email="admin@example.com")


@pytest.fixture()
def user_headers(client):
    return register(client, "alice")
