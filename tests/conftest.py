# tests/conftest.py
import os
import sys
import tempfile

# Settings are read at import time; point them at throwaway locations.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="contacts-uploads-")
os.environ["BLOB_BACKEND"] = "local"
os.environ["RATE_LIMIT_TIMES"] = "100000"
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath("."))

from app.database import Base, get_db
from app.models import Contact
from app.services import ContactService
from app.storage import LocalBlobStore, get_blob_store
from main import app


# DB (SQLite in-memory for tests)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def prepare_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.execute(delete(Contact))
        session.commit()
        session.close()


@pytest.fixture()
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "uploads")


@pytest.fixture()
def service(db_session, blob_store):
    return ContactService(db_session, blob_store)


# Client fixture: override DB and blob store dependencies per test
@pytest.fixture()
def client(db_session, blob_store):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
