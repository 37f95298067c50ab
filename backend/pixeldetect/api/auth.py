from __future__ import annotations

import logging
import uuid
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.config import settings
from ..core.emailer import send_login_code
from ..core.security import generate_login_code, generate_salt, issue_jwt, verify_jwt
from ..db.auth import SQLiteAuthStore
from ..schemas.auth import MeResponse, RequestCodeBody, RequestCodeResponse, TokenResponse, VerifyCodeBody


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
store = SQLiteAuthStore(settings.auth_db_path)

bearer = HTTPBearer(auto_error=False)


def _user_from_token(token: str) -> MeResponse:
    payload = verify_jwt(token)
    return MeResponse(user_id=str(payload["sub"]), email=str(payload.get("email", "")))


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> MeResponse:
    if creds is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return _user_from_token(creds.credentials)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Optional[MeResponse]:
    """Like get_current_user, but a missing or bad token resolves to no principal."""
    if creds is None:
        return None
    try:
        return _user_from_token(creds.credentials)
    except jwt.InvalidTokenError:
        return None


@router.post("/request_code", response_model=RequestCodeResponse)
def request_code(body: RequestCodeBody) -> RequestCodeResponse:
    email = body.email.lower()
    code = generate_login_code()
    store.upsert_login_code(email, code, generate_salt())
    send_login_code(email, code)
    return RequestCodeResponse(expires_in=settings.login_code_ttl_seconds)


@router.post("/verify_code", response_model=TokenResponse)
def verify_code(body: VerifyCodeBody) -> TokenResponse:
    email = body.email.lower()
    if not store.verify_login_code(email, body.code.strip()):
        raise HTTPException(status_code=401, detail="Invalid or expired code")

    user_id = store.get_or_create_user(user_id=str(uuid.uuid4()), email=email)
    logger.info("Login user_id=%s", user_id)
    return TokenResponse(access_token=issue_jwt(user_id=user_id, email=email), expires_in=settings.jwt_ttl_seconds)


@router.get("/me", response_model=MeResponse)
def me(user: MeResponse = Depends(get_current_user)) -> MeResponse:
    return user
