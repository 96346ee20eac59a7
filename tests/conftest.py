# tests/conftest.py
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="nobs-tests-")

# Must be in place before the app modules read their configuration
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["APP_KEY"] = "test-app-key-please-change"
os.environ["APP_ENV"] = "local"
os.environ["ORCID_TOKEN_URL"] = "https://sandbox.orcid.org/oauth/token"
os.environ["ORCID_API_URL"] = "https://pub.sandbox.orcid.org/v3.0"
os.environ["ORCID_CLIENT_ID"] = "APP-TESTCLIENT"
os.environ["ORCID_CLIENT_SECRET"] = "test-secret"
os.environ["ORCID_REDIRECT_URI"] = "http://localhost:5173/callback"
os.environ["ORCID_AUTH_URL"] = "https://sandbox.orcid.org/oauth/authorize"
os.environ["NOBS_DATA_DIR"] = os.path.join(_TMP, "data")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from database.db import Base, engine, SessionLocal, init_db
from database.models.auth_models import User
from services.file_storage_service import FileStorageService, get_file_storage
from services.token_service import create_access_token


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    service = FileStorageService(str(tmp_path / "data"))
    app.dependency_overrides[get_file_storage] = lambda: service
    yield service
    app.dependency_overrides.pop(get_file_storage, None)


@pytest.fixture
def client(storage):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(orcid="0000-0002-1825-0097", name="Josiah Carberry", institution="Brown University"):
        user = User(orcid=orcid, name=name, email=None, institution=institution)
        db.add(user)
        db.commit()
        db.refresh(user)
        token = create_access_token(db, user)
        return user, {"Authorization": f"Bearer {token}"}
    return _make


class FakeTimer:
    """Stands in for threading.Timer; fires only when told to."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.started = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


@pytest.fixture
def fake_timers():
    """Timer factory for AutoSave; every timer it builds is kept in `.created`."""
    created = []

    def factory(delay, callback):
        timer = FakeTimer(delay, callback)
        created.append(timer)
        return timer

    factory.created = created
    return factory
