import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud
from ..config import get_settings
from ..db import get_db
from ..schemas import AccessTokenOut, AccessTokenRequest, HasPinOut, SessionOut, VerifyPinRequest
from ..security import get_current_owner, verify_pin, verify_shared_secret
from ..tokens import TokenService, get_token_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

settings = get_settings()


@router.post("/create-access-token", response_model=AccessTokenOut)
def create_access_token(
    data: AccessTokenRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> AccessTokenOut:
    if not verify_shared_secret(data.secret):
        logger.warning("Rejected access token request for %s: bad shared secret", data.owner_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid secret.")
    if not crud.get_user(db, data.owner_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    record = tokens.issue_access_token(data.owner_id)
    url = f"{settings.dashboard_url.rstrip('/')}/?token={record.token}"
    return AccessTokenOut(token=record.token, expires_at=record.expires_at, url=url)


@router.post("/verify-pin", response_model=SessionOut)
def verify_user_pin(
    data: VerifyPinRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> SessionOut:
    owner_id = tokens.resolve_access_token(data.token)
    if owner_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token.")

    user = crud.get_user(db, owner_id)
    if not user or not user.pin_hash:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No PIN set.")
    if not verify_pin(data.pin, user.pin_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid PIN.")

    session_token, expires_at = tokens.issue_session_token(owner_id)
    return SessionOut(session_token=session_token, expires_at=expires_at)


@router.get("/has-pin", response_model=HasPinOut)
def has_pin(
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
) -> HasPinOut:
    user = crud.get_user(db, owner_id)
    return HasPinOut(has_pin=bool(user and user.pin_hash))
