import os

# Settings are read at import time.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_CATALOG"] = "1"
os.environ.pop("RABBITMQ_HOST", None)

import pytest
from fastapi.testclient import TestClient

from shop_service.app.database import SessionLocal
from shop_service.app.main import app, get_producer
from shop_service.app.seed import init_store


class RecordingProducer:
    def __init__(self):
        self.events = []

    def publish(self, routing_key, message):
        self.events.append((routing_key, message))
        return True


@pytest.fixture(autouse=True)
def fresh_store():
    init_store(seed=True, reset=True)
    yield


@pytest.fixture
def db():
    # Do not mix with `client` in one test: both share the single in-memory connection.
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def events():
    producer = RecordingProducer()
    app.dependency_overrides[get_producer] = lambda: producer
    yield producer
    app.dependency_overrides.pop(get_producer, None)


@pytest.fixture
def client(events):
    return TestClient(app)


@pytest.fixture
def signup(client):
    def register(name="Alice", email="alice@example.com", password="secret123"):
        resp = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        return resp.json()
    return register


@pytest.fixture
def alice(signup):
    return {"Authorization": f"Bearer {signup()['token']}"}


@pytest.fixture
def bob(signup):
    token = signup(name="Bob", email="bob@example.com")["token"]
    return {"Authorization": f"Bearer {token}"}
