"""Password hashing, session tokens and the /api/auth routes."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from toolrelay.core.errors import AuthError
from toolrelay.memory.models import User

router = APIRouter(prefix="/api/auth", tags=["auth"])

ALGORITHM = "HS256"

# --- Password hashing ---


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against hash."""
    return bcrypt.checkpw(password.encode(), password_hash.encode())


# --- JWT ---


def create_token(user_id: str, secret: str, expiry_hours: int = 24) -> str:
    """Create a session token; ``jti`` makes it individually revocable."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + timedelta(hours=expiry_hours),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> dict[str, Any]:
    """Decode and validate a session token.

    Raises:
        AuthError: If the token is expired, malformed or badly signed.
    """
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as err:
        msg = "Token expired"
        raise AuthError(msg) from err
    except jwt.InvalidTokenError as err:
        msg = "Invalid token"
        raise AuthError(msg) from err


def bearer_token(request: Request) -> str | None:
    """The bearer token from the Authorization header, if any."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def _jwt_secret(request: Request) -> str:
    secret: str = request.app.state.config.auth.jwt_secret
    if not secret:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    return secret


# --- Request models ---


class SignupRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=8)
    display_name: str | None = None


class SigninRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    display_name: str
    is_active: bool


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class SessionResponse(BaseModel):
    user: UserResponse
    expires_at: str


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        is_active=user.is_active,
    )


# --- Dependency: get current user from JWT ---


async def get_current_user(request: Request) -> User:
    """FastAPI dependency: resolve the user behind the bearer token.

    Raises AuthError when the token is missing, invalid, expired or
    revoked. The decoded claims are left on ``request.state.token_claims``.
    """
    token = bearer_token(request)
    if token is None:
        msg = "Missing or invalid Authorization header"
        raise AuthError(msg)

    payload = decode_token(token, _jwt_secret(request))
    user_id = payload.get("sub")
    jti = payload.get("jti")

    from toolrelay.memory.repository import ChatRepository

    db_factory = request.app.state.db_factory
    async with db_factory() as session:
        repo = ChatRepository(session)
        if jti is None or await repo.is_token_revoked(jti):
            msg = "Token revoked"
            raise AuthError(msg)
        user = await repo.get_user(user_id) if user_id else None

    if user is None or not user.is_active:
        msg = "User not found or inactive"
        raise AuthError(msg)

    request.state.token_claims = payload
    return user


# --- Endpoints ---


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(body: SignupRequest, request: Request) -> TokenResponse:
    """Register a new user and sign them in."""
    config = request.app.state.config
    if not config.auth.registration_enabled:
        raise HTTPException(status_code=403, detail="Registration is disabled")
    secret = _jwt_secret(request)

    from toolrelay.memory.repository import ChatRepository

    db_factory = request.app.state.db_factory
    async with db_factory() as session:
        repo = ChatRepository(session)
        if await repo.get_user_by_email(body.email) is not None:
            raise HTTPException(status_code=409, detail="Email already registered")

        user = await repo.create_user(
            email=body.email,
            password_hash=hash_password(body.password),
            display_name=body.display_name or body.email.split("@", 1)[0],
        )
        await session.commit()

    token = create_token(user.id, secret, config.auth.token_expiry_hours)
    return TokenResponse(access_token=token, user=_user_response(user))


@router.post("/signin", response_model=TokenResponse)
async def signin(body: SigninRequest, request: Request) -> TokenResponse:
    """Authenticate and get a token."""
    config = request.app.state.config
    secret = _jwt_secret(request)

    from toolrelay.memory.repository import ChatRepository

    db_factory = request.app.state.db_factory
    async with db_factory() as session:
        user = await ChatRepository(session).get_user_by_email(body.email)

    if user is None or not verify_password(body.password, user.password_hash):
        msg = "Invalid credentials"
        raise AuthError(msg)

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account disabled")

    token = create_token(user.id, secret, config.auth.token_expiry_hours)
    return TokenResponse(access_token=token, user=_user_response(user))


@router.post("/signout")
async def signout(
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> dict[str, bool]:
    """Revoke the presented token."""
    claims = request.state.token_claims

    from toolrelay.memory.repository import ChatRepository

    db_factory = request.app.state.db_factory
    async with db_factory() as session:
        await ChatRepository(session).revoke_token(
            claims["jti"],
            user.id,
            datetime.fromtimestamp(claims["exp"], UTC),
        )
        await session.commit()
    return {"success": True}


@router.get("/session", response_model=SessionResponse)
async def current_session(
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> SessionResponse:
    """Current user and when the token expires."""
    exp = request.state.token_claims["exp"]
    return SessionResponse(
        user=_user_response(user),
        expires_at=datetime.fromtimestamp(exp, UTC).isoformat(),
    )
