from pathlib import Path
import os
import tempfile

import pytest

# Point the app at a throwaway SQLite file before `schoolhub` is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="schoolhub-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["ENV"] = "dev"
os.environ["LOCALE"] = "vi"

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, select  # noqa: E402

from schoolhub.config import settings  # noqa: E402
from schoolhub.database import engine, create_db_and_tables  # noqa: E402
from schoolhub.main import app  # noqa: E402
from schoolhub.utils.rate_limit import FailedLoginLimiter  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db(monkeypatch):
    """Start every test with empty tables and a fresh login limiter."""
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    monkeypatch.setattr("schoolhub.main._login_limiter", FailedLoginLimiter(5, 300))
    yield


@pytest.fixture
def client():
    return TestClient(app)


def _bearer(resp) -> dict:
    assert resp.status_code == 200, resp.text
    return {'Authorization': f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return _bearer(client.post('/auth/staff-login', json={'secret_key': settings.ADMIN_SECRET_KEY}))


@pytest.fixture
def bcs_headers(client):
    return _bearer(client.post('/auth/staff-login', json={'secret_key': settings.BCS_SECRET_KEY}))


@pytest.fixture
def make_student(client):
    """Register a student and return auth headers for it."""
    def _make(email='an@school.vn', password='pw123', full_name='Nguyễn Văn An'):
        r = client.post('/auth/register', json={'email': email, 'password': password, 'full_name': full_name})
        assert r.status_code == 201, r.text
        return _bearer(client.post('/auth/login', json={'email': email, 'password': password}))
    return _make


@pytest.fixture
def student_headers(make_student):
    return make_student()


@pytest.fixture
def count_rows():
    """Count rows of `model` matching the given column values."""
    def _count(model, **filters):
        stmt = select(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        with Session(engine) as session:
            return len(session.exec(stmt).all())
    return _count
