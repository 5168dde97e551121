from datetime import datetime, timedelta, timezone

import jwt
import pytest

from expensebot import crud
from expensebot.tokens import InMemoryTokenStore, SqlTokenStore, TokenRecord, TokenService


def test_access_token_round_trip(token_service):
    record = token_service.issue_access_token("alice")
    assert token_service.resolve_access_token(record.token) == "alice"
    assert record.expires_at - token_service.clock() == timedelta(minutes=30)


def test_access_tokens_are_unique(token_service):
    first = token_service.issue_access_token("alice")
    second = token_service.issue_access_token("alice")
    assert first.token != second.token
    assert token_service.resolve_access_token(first.token) == "alice"


def test_access_token_expires(token_service, utc_clock):
    record = token_service.issue_access_token("alice")
    utc_clock.advance(minutes=29, seconds=59)
    assert token_service.resolve_access_token(record.token) == "alice"
    utc_clock.advance(seconds=1)
    assert token_service.resolve_access_token(record.token) is None


def test_unknown_access_token(token_service):
    assert token_service.resolve_access_token("nope") is None


def test_expired_tokens_are_swept_on_issue(settings, utc_clock):
    store = InMemoryTokenStore()
    service = TokenService(store, settings, clock=utc_clock)
    service.issue_access_token("alice")
    service.issue_access_token("bob")
    assert len(store) == 2

    utc_clock.advance(hours=1)
    service.issue_access_token("carol")
    assert len(store) == 1


def test_session_token_round_trip(token_service):
    token, expires_at = token_service.issue_session_token("alice")
    assert token_service.resolve_session_token(token) == "alice"
    assert expires_at - token_service.clock() == timedelta(hours=24)


def test_session_token_expires(token_service, utc_clock):
    token, _ = token_service.issue_session_token("alice")
    utc_clock.advance(hours=24)
    assert token_service.resolve_session_token(token) is None


def test_session_token_rejects_tampering(token_service, settings):
    token, _ = token_service.issue_session_token("alice")
    assert token_service.resolve_session_token(token + "x") is None

    forged = jwt.encode(
        {"sub": "alice", "typ": "session", "exp": token_service.clock() + timedelta(hours=1)},
        "wrong-secret",
        algorithm=settings.jwt_algorithm,
    )
    assert token_service.resolve_session_token(forged) is None


def test_session_token_requires_session_type(token_service, settings):
    other = jwt.encode(
        {"sub": "alice", "typ": "refresh", "exp": token_service.clock() + timedelta(hours=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    assert token_service.resolve_session_token(other) is None


def test_resolve_accepts_either_kind(token_service):
    access = token_service.issue_access_token("alice").token
    session, _ = token_service.issue_session_token("bob")
    assert token_service.resolve(access) == "alice"
    assert token_service.resolve(session) == "bob"
    assert token_service.resolve("garbage") is None


def test_sql_token_store(session_factory, db):
    crud.upsert_user(db, "alice")
    store = SqlTokenStore(session_factory)
    now = datetime(2024, 5, 15, 4, 0, tzinfo=timezone.utc)
    store.put(TokenRecord("live", "alice", now + timedelta(minutes=30)))
    store.put(TokenRecord("stale", "alice", now - timedelta(minutes=1)))

    record = store.get("live")
    assert record.owner_id == "alice"
    assert record.expires_at == now + timedelta(minutes=30)
    assert record.is_valid(now)

    assert store.sweep(now) == 1
    assert store.get("stale") is None
    assert store.get("live") is not None


def test_sql_backed_service(session_factory, db, settings, utc_clock):
    crud.upsert_user(db, "alice")
    service = TokenService(SqlTokenStore(session_factory), settings, clock=utc_clock)
    record = service.issue_access_token("alice")
    assert service.resolve_access_token(record.token) == "alice"
    utc_clock.advance(minutes=31)
    assert service.resolve_access_token(record.token) is None


@pytest.mark.parametrize("backend", ["memory", "sql"])
def test_tokens_for_one_owner_expire_independently(backend, session_factory, db, settings, utc_clock):
    crud.upsert_user(db, "alice")
    store = InMemoryTokenStore() if backend == "memory" else SqlTokenStore(session_factory)
    service = TokenService(store, settings, clock=utc_clock)

    first = service.issue_access_token("alice")
    utc_clock.advance(minutes=20)
    second = service.issue_access_token("alice")
    assert service.resolve_access_token(first.token) == "alice"
    assert service.resolve_access_token(second.token) == "alice"

    utc_clock.advance(minutes=15)
    assert service.resolve_access_token(first.token) is None
    assert service.resolve_access_token(second.token) == "alice"
