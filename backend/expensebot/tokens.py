"""Dashboard access tokens and PIN-verified session tokens.

Access tokens are opaque random strings kept in a ``TokenStore``; they expire
after ``access_token_expire_minutes`` and are never renewed, only reissued.
Session tokens are signed JWTs minted after a successful PIN check and live
for ``session_token_expire_minutes``. Either one authorizes dashboard reads.
"""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt
from sqlalchemy import delete
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings, get_settings
from .models import AccessTokenModel

logger = logging.getLogger(__name__)

SESSION_TOKEN_TYPE = "session"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class TokenRecord:
    token: str
    owner_id: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class TokenStore(ABC):
    """Storage for opaque access tokens."""

    @abstractmethod
    def put(self, record: TokenRecord) -> None:
        """Persist a freshly issued token."""

    @abstractmethod
    def get(self, token: str) -> TokenRecord | None:
        """Return the stored record, expired or not."""

    @abstractmethod
    def sweep(self, now: datetime) -> int:
        """Drop every record expired at ``now``; return how many were removed."""


class InMemoryTokenStore(TokenStore):
    def __init__(self) -> None:
        self._records: dict[str, TokenRecord] = {}

    def put(self, record: TokenRecord) -> None:
        self._records[record.token] = record

    def get(self, token: str) -> TokenRecord | None:
        return self._records.get(token)

    def sweep(self, now: datetime) -> int:
        expired = [token for token, record in self._records.items() if not record.is_valid(now)]
        for token in expired:
            del self._records[token]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)


class SqlTokenStore(TokenStore):
    """``dashboard_tokens`` table; timestamps are stored as naive UTC."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def put(self, record: TokenRecord) -> None:
        with self._session_factory() as db:
            db.add(
                AccessTokenModel(
                    token=record.token,
                    owner_id=record.owner_id,
                    expires_at=_to_naive_utc(record.expires_at),
                )
            )
            db.commit()

    def get(self, token: str) -> TokenRecord | None:
        with self._session_factory() as db:
            row = db.get(AccessTokenModel, token)
            if row is None:
                return None
            return TokenRecord(
                token=row.token,
                owner_id=row.owner_id,
                expires_at=row.expires_at.replace(tzinfo=timezone.utc),
            )

    def sweep(self, now: datetime) -> int:
        with self._session_factory() as db:
            result = db.execute(
                delete(AccessTokenModel).where(AccessTokenModel.expires_at <= _to_naive_utc(now))
            )
            db.commit()
            return result.rowcount or 0


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class TokenService:
    def __init__(
        self,
        store: TokenStore,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_expire_minutes)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.session_token_expire_minutes)

    def issue_access_token(self, owner_id: str) -> TokenRecord:
        now = self.clock()
        swept = self.store.sweep(now)
        if swept:
            logger.debug("Swept %d expired access tokens", swept)
        record = TokenRecord(
            token=secrets.token_urlsafe(24),
            owner_id=owner_id,
            expires_at=now + self.access_ttl,
        )
        self.store.put(record)
        logger.info("Issued dashboard access token for %s", owner_id)
        return record

    def resolve_access_token(self, token: str) -> str | None:
        record = self.store.get(token)
        if record is None or not record.is_valid(self.clock()):
            return None
        return record.owner_id

    def issue_session_token(self, owner_id: str) -> tuple[str, datetime]:
        expires_at = self.clock() + self.session_ttl
        payload = {
            "sub": owner_id,
            "typ": SESSION_TOKEN_TYPE,
            "exp": expires_at,
            "jti": secrets.token_hex(8),
        }
        token = jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)
        return token, expires_at

    def resolve_session_token(self, token: str) -> str | None:
        # Expiry is checked against the service clock rather than PyJWT's.
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                options={"verify_exp": False, "require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError:
            return None
        if payload.get("typ") != SESSION_TOKEN_TYPE:
            return None
        if self.clock().timestamp() >= float(payload["exp"]):
            return None
        return str(payload["sub"])

    def resolve(self, token: str) -> str | None:
        """Owner for either an access token or a session token."""
        return self.resolve_access_token(token) or self.resolve_session_token(token)


@lru_cache
def get_token_service() -> TokenService:
    settings = get_settings()
    if settings.token_backend == "memory":
        store: TokenStore = InMemoryTokenStore()
    else:
        from .db import SessionLocal

        store = SqlTokenStore(SessionLocal)
    return TokenService(store, settings)
