"""Shared fixtures for the unit test-suite."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator

# Configure environment before application imports
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_transforme.db")
os.environ.setdefault("AWS_S3_BUCKET", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/transforme-tests")
os.environ.setdefault("PUBLIC_MEDIA_BASE_URL", "https://media.example.org")
os.environ.setdefault("CRON_SECRET", "cron-secret")
os.environ.setdefault("USAGE_API_SECRET", "usage-secret")
os.environ.setdefault("DONOR_JWT_SECRET", "donor-secret")
os.environ["SECURE_COOKIES"] = "false"
os.environ["REDIS_ENABLED"] = "false"
os.environ["APP_LOG_LEVEL"] = "off"
os.environ["OPENAI_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["MERCURY_API_TOKEN"] = ""
os.environ["WISE_API_TOKEN"] = ""

import pytest
from fastapi.testclient import TestClient

from transforme.core.rate_limit import reset_rate_limits
from transforme.core.security import get_current_user
from transforme.db import get_engine, session_scope
from transforme.db.base import Base
from transforme.main import app
from transforme.models import Orphanage, User


@pytest.fixture(autouse=True)
def setup_database() -> Iterator[None]:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    reset_rate_limits()
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def make_user() -> Callable[..., int]:
    def _make(
        email: str,
        roles: list[str],
        *,
        name: str | None = None,
        status: str = "active",
    ) -> int:
        with session_scope() as session:
            user = User(email=email, name=name, roles=roles, status=status)
            session.add(user)
            session.flush()
            return user.id

    return _make


@pytest.fixture()
def login() -> Callable[[int], None]:
    """Authenticate subsequent requests as the given user id."""

    def _login(user_id: int) -> None:
        def override_current_user() -> User:
            with session_scope() as session:
                user = session.get(User, user_id)
                assert user is not None
                return user

        app.dependency_overrides[get_current_user] = override_current_user

    return _login


@pytest.fixture()
def admin_id(make_user: Callable[..., int], login: Callable[[int], None]) -> int:
    user_id = make_user("admin@example.com", ["admin"], name="Admin")
    login(user_id)
    return user_id


@pytest.fixture()
def orphanage_id() -> str:
    with session_scope() as session:
        orphanage = Orphanage(
            id="sunrise-home",
            name="Sunrise Home",
            location="Denpasar, Bali",
            description="Children's home in Denpasar",
            latitude=-8.6705,
            longitude=115.2126,
        )
        session.add(orphanage)
        return orphanage.id
