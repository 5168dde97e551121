import hashlib
import hmac
import secrets

from fastapi import Depends, HTTPException, Query, status

from .config import get_settings
from .tokens import TokenService, get_token_service

settings = get_settings()

PIN_HASH_LENGTH = 16


def hash_pin(pin: str) -> str:
    """One-way digest of a PIN, truncated to fit the ``pin_hash`` column."""
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()[:PIN_HASH_LENGTH]


def verify_pin(pin: str, pin_hash: str | None) -> bool:
    if not pin_hash:
        return False
    return hmac.compare_digest(hash_pin(pin), pin_hash)


def generate_pin() -> str:
    return f"{1000 + secrets.randbelow(9000)}"


def verify_shared_secret(candidate: str | None) -> bool:
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), settings.shared_secret.encode("utf-8"))


def _require_token(token: str | None) -> str:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token.")
    return token


def get_current_owner(
    token: str | None = Query(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> str:
    """Resolve the dashboard caller from either an access or a session token."""
    owner_id = tokens.resolve(_require_token(token))
    if owner_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token.")
    return owner_id
