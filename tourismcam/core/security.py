from __future__ import annotations

import re
import secrets
import time

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.hash import bcrypt


TOKEN_PREFIX = "mock_jwt_token_"
SESSION_PREFIX = "session_"
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
PHONE_RE = re.compile(r"^\+?[\d\s\-\(\)]+$")

bearer_scheme = HTTPBearer(auto_error=False)


def _stamp() -> str:
    return f"{int(time.time() * 1000)}{secrets.token_hex(4)}"


def generate_token() -> str:
    return TOKEN_PREFIX + _stamp()


def generate_session_id() -> str:
    return SESSION_PREFIX + _stamp()


def generate_secret() -> str:
    return secrets.token_urlsafe(24)


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        return False


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.search(email))


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(phone))


async def require_token(creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str:
    if creds is None or creds.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Authorization token is required")
    token = creds.credentials.strip()
    if not token:
        raise HTTPException(status_code=401, detail="Authorization token is required")
    if not token.startswith(TOKEN_PREFIX):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return token


async def optional_token(creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str | None:
    if creds is None or creds.scheme.lower() != "bearer":
        return None
    token = creds.credentials.strip()
    if not token.startswith(TOKEN_PREFIX):
        return None
    return token
