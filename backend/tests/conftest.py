import os
import sys
import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENV", "dev")
os.environ.setdefault("SEED_ENABLED", "true")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "admin1234")

import auditlog.models  # noqa: E402,F401
from auditlog.core import security  # noqa: E402
from auditlog.db.base import Base  # noqa: E402
from auditlog.db.session import SessionLocal, engine  # noqa: E402
from auditlog.models.role import Role  # noqa: E402
from auditlog.models.user import User  # noqa: E402
from auditlog.services.admin_logs.store import AdminLogStore  # noqa: E402

# replace bcrypt with a cheap reversible scheme to keep tests fast
security.pwd_context.hash = lambda pw: f"hashed:{pw[:72]}"
security.pwd_context.verify = lambda plain, hashed: hashed == f"hashed:{plain[:72]}"

from main import app  # noqa: E402


class FakeClock:
    """Deterministic clock for the admin log store; each call advances it."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime.now(timezone.utc).replace(microsecond=0) - timedelta(hours=1)
        self.step = step

    def set(self, value: datetime) -> None:
        self.current = value

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture()
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(tables):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(tables, clock):
    return AdminLogStore(SessionLocal, clock=clock)


@pytest.fixture()
def create_user(tables):
    def _create(username: str, password: str = "secret123", roles=("USER",)) -> int:
        db = SessionLocal()
        try:
            user = User(
                username=username,
                display_name=username.title(),
                hashed_password=security.hash_password(password),
                is_active=True,
            )
            for name in roles:
                role = db.query(Role).filter(Role.name == name).first()
                if not role:
                    role = Role(name=name)
                    db.add(role)
                    db.flush()
                user.roles.append(role)
            db.add(user)
            db.commit()
            return user.id
        finally:
            db.close()

    return _create


@pytest.fixture()
def local_zone(monkeypatch):
    """Switch the process-local timezone (POSIX TZ string) for one test."""

    def _switch(tz: str) -> None:
        monkeypatch.setenv("TZ", tz)
        time.tzset()

    yield _switch
    monkeypatch.undo()
    time.tzset()


def login(client, username: str, password: str) -> str:
    response = client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
