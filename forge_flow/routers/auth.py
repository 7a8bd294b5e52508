"""Account endpoints: register, login and logout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select

from ..auth import bearer_token, get_sessions, hash_password, verify_password
from ..db import Database, User
from ..logging import get_logger
from ..schemas import AuthResponse, LoginRequest, RegisterRequest, SuccessResponse, UserOut
from ..sessions import SessionRegistry

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def auth_database(request: Request) -> Database:
    database = request.app.state.database
    if database is None:
        raise HTTPException(
            status_code=503,
            detail="Database not configured. Authentication disabled for development.",
        )
    return database


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, name=user.name)


@router.post("/register", response_model=AuthResponse)
def register(
    payload: RegisterRequest,
    database: Database = Depends(auth_database),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AuthResponse:
    """Create an account and sign it in."""

    if not payload.email or not payload.password or not payload.name:
        raise HTTPException(status_code=400, detail="All fields are required")

    with database.session() as session:
        existing = session.scalar(select(User).where(User.email == payload.email))
        if existing is not None:
            raise HTTPException(status_code=400, detail="Email already registered")
        user = User(email=payload.email, name=payload.name, password_hash=hash_password(payload.password))
        session.add(user)
        session.flush()
        out = _user_out(user)

    logger.info("user registered", user_id=out.id)
    return AuthResponse(user=out, token=sessions.issue(out.id))


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    database: Database = Depends(auth_database),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AuthResponse:
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    with database.session() as session:
        user = session.scalar(select(User).where(User.email == payload.email))
        # Unknown email and wrong password get the same answer.
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.info("login rejected")
            raise HTTPException(status_code=401, detail="Invalid credentials")
        out = _user_out(user)

    logger.info("user logged in", user_id=out.id)
    return AuthResponse(user=out, token=sessions.issue(out.id))


@router.post("/logout", response_model=SuccessResponse)
async def logout(request: Request, sessions: SessionRegistry = Depends(get_sessions)) -> SuccessResponse:
    """Drop the caller's session token if it exists. Always succeeds."""

    if sessions.revoke(bearer_token(request)):
        logger.info("user logged out")
    return SuccessResponse()
