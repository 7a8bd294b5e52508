"""Password hashing and request dependencies for the account API."""

from __future__ import annotations

import hashlib
import hmac
import secrets

from fastapi import Depends, HTTPException, Request

from .db import Database
from .sessions import SessionRegistry

PBKDF2_ITERATIONS = 240_000
_SCHEME = "pbkdf2_sha256"


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Return ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``."""

    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), iterations)
    return f"{_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, iterations, salt, expected = stored.split("$")
        rounds = int(iterations)
    except ValueError:
        return False
    if scheme != _SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), rounds)
    return hmac.compare_digest(digest.hex(), expected)


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_database(request: Request) -> Database:
    database = request.app.state.database
    if database is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return database


def current_user_id(
    request: Request,
    database: Database = Depends(get_database),
    sessions: SessionRegistry = Depends(get_sessions),
) -> int:
    """Resolve the bearer token to a user id or answer 401."""

    user_id = sessions.resolve(bearer_token(request))
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id
