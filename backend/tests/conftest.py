import os

# Settings are cached on first import, so the environment must be ready first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TOKEN_BACKEND"] = "memory"
os.environ["SHARED_SECRET"] = "test-secret"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["DASHBOARD_URL"] = "https://dash.example/"
os.environ["TIMEZONE"] = "Asia/Singapore"
os.environ.pop("TELEGRAM_BOT_TOKEN", None)

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from expensebot.config import get_settings
from expensebot.db import Base, build_engine, get_db
from expensebot.executor import CommandExecutor
from expensebot.main import app
from expensebot.routers.dashboard import get_clock
from expensebot.tokens import InMemoryTokenStore, TokenService, get_token_service

FIXED_NOW = datetime(2024, 5, 15, 12, 0)


class MutableClock:
    """Aware UTC clock that tests can move forward."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def utc_clock():
    return MutableClock(datetime(2024, 5, 15, 4, 0, tzinfo=timezone.utc))


@pytest.fixture
def token_service(settings, utc_clock):
    return TokenService(InMemoryTokenStore(), settings, clock=utc_clock)


@pytest.fixture
def executor(session_factory, token_service, settings):
    return CommandExecutor(session_factory, token_service, settings, now=lambda: FIXED_NOW)


@pytest.fixture
def client(session_factory, token_service):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_NOW)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
