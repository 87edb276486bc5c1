"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema rebuilt for every test
- User directory fixtures (logged-in, never-logged-in, inactive users)
- HTTPX AsyncClient wired to the same session as the test
"""
import os
from datetime import timedelta
from typing import AsyncGenerator, Callable, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

# Settings are read at import time; point them at SQLite before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["NOTIFICATION_FANOUT_MODE"] = "inline"
os.environ.pop("SENTRY_DSN", None)

from assurance.main import app  # noqa: E402
from assurance.core.config import settings  # noqa: E402
from assurance.core.deps import get_db  # noqa: E402
from assurance.db.base import Base, utcnow  # noqa: E402
from assurance.db.enums import UserRole, UserStatus  # noqa: E402
from assurance.db.models import User  # noqa: E402
from assurance.db.session import SessionLocal, engine  # noqa: E402

CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Keep report file content inside the test's tmp dir."""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(tmp_path / "report-files"))
    return tmp_path / "report-files"


# =============================================================================
# User Directory Fixtures
# =============================================================================

@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make_user(
        username: str,
        *,
        logged_in: bool = True,
        active: bool = True,
        status: UserStatus = UserStatus.REGISTERED,
        role: UserRole = UserRole.USER,
    ) -> User:
        user = User(
            username=username,
            active=active,
            status=status.value,
            role=role.value,
            last_login_at=utcnow() - timedelta(hours=1) if logged_in else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def directory(make_user) -> dict[str, User]:
    """
    Mixed user directory.

    Eligible for broadcasts: alice, bob, carol.
    """
    return {
        "alice": make_user("alice"),
        "bob": make_user("bob"),
        "carol": make_user("carol", role=UserRole.ADMIN),
        "dave": make_user("dave", logged_in=False),
        "erin": make_user("erin", active=False),
    }


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient sharing the test session; carries no CSRF header."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def csrf_client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient with the CSRF header set, for mutating endpoints."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=CSRF_HEADERS,
    ) as c:
        yield c

    app.dependency_overrides.clear()
