# tests/conftest.py
# Test setup: temporary SQLite DB and dependency override for sessions.

import os
import sys
from pathlib import Path

# Settings are read at import time, so the test environment goes first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "10"  # lowest accepted cost keeps the suite quick
for _key in ("ADMIN_USERNAME", "ADMIN_EMAIL", "ADMIN_PASSWORD"):
    os.environ.pop(_key, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

# Ensure repo root on sys.path so "import remodel" works
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import remodel.models as _models  # noqa: F401,E402  # registers tables on SQLModel.metadata
from remodel.db import get_session  # noqa: E402
from remodel.main import app as fastapi_app  # noqa: E402
from remodel.models import Role  # noqa: E402
from remodel.services import users as user_store  # noqa: E402

API = "/api"


@pytest.fixture()
def tmp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_remodel.db"


@pytest.fixture()
def test_engine(tmp_db_path: Path):
    # File-based SQLite so the app and the test share the same DB
    url = f"sqlite:///{tmp_db_path}"
    engine = create_engine(url, connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session(test_engine):
    with Session(test_engine) as s:
        yield s


@pytest.fixture()
def client(test_engine):
    # Override the app's DB session to use our test engine
    def _get_test_session():
        with Session(test_engine) as s:
            yield s

    fastapi_app.dependency_overrides[get_session] = _get_test_session
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def admin(session):
    return user_store.create_user(
        session,
        name="Site Admin",
        username="admin",
        email="admin@example.com",
        password="AdminPass123",
        role=Role.admin,
    )


@pytest.fixture()
def regular_user(session):
    return user_store.create_user(
        session,
        name="Regular User",
        username="viewer",
        email="viewer@example.com",
        password="ViewerPass123",
    )


@pytest.fixture()
def admin_headers(admin):
    return {"x-user-id": admin.id}


@pytest.fixture()
def user_headers(regular_user):
    return {"x-user-id": regular_user.id}
