"""
Test configuration and fixtures.

Every test gets a fresh in-memory SQLite database and an in-memory object store,
both swapped into the FastAPI app through dependency overrides.
"""
import os

# Settings are read at import time
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.security import AuthRole, create_access_token
from app.db.session import get_session
from app.services.storage import StorageError, StoredObject, get_storage
from app.main import app


class FakeStorage:
    """In-memory stand-in for ObjectStorage; keys in ``fail_keys`` refuse deletion."""

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_keys = set()

    def put(self, key, data, content_type="application/octet-stream", metadata=None):
        self.objects[key] = StoredObject(key=key, body=data, content_type=content_type, metadata=metadata or {})
        return key

    def get(self, key):
        return self.objects.get(key)

    def delete(self, key):
        if key in self.fail_keys:
            raise StorageError(f"Failed to delete {key}: simulated outage")
        self.objects.pop(key, None)
        self.deleted.append(key)


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="storage")
def storage_fixture():
    return FakeStorage()


@pytest.fixture(name="client")
def client_fixture(session, storage):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_storage] = lambda: storage
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def bearer(role: AuthRole) -> dict:
    token = create_access_token(subject=f"{role.value}@example.com", role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def editor_headers():
    return bearer(AuthRole.EDITOR)


@pytest.fixture
def viewer_headers():
    return bearer(AuthRole.VIEWER)


@pytest.fixture
def admin_headers():
    return bearer(AuthRole.ADMIN)
