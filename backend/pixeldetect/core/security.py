from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from .config import settings


def generate_login_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def generate_salt() -> str:
    return secrets.token_hex(16)


def hash_code(email: str, code: str, salt: str) -> str:
    msg = f"{email.lower()}:{code}".encode("utf-8")
    key = salt.encode("utf-8")
    return hmac.new(key, msg, hashlib.sha256).hexdigest()


def code_matches(email: str, code: str, salt: str, expected_hash: str) -> bool:
    return hmac.compare_digest(hash_code(email, code, salt), expected_hash)


def issue_jwt(user_id: str, email: str) -> str:
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.jwt_ttl_seconds)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def verify_jwt(token: str) -> Dict[str, Any]:
    """Decode a bearer token; raises jwt.InvalidTokenError on any problem."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "sub"]},
    )
