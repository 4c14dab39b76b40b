"""Authentication service with JWT tokens and request-scoped actor resolution."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..exceptions import ForbiddenError
from ..models.user import User
from ..utils.security import get_password_hash, password_needs_rehash, verify_password
from .permission_service import Actor, build_actor

logger = logging.getLogger(__name__)

# OAuth2 scheme for token-based authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


class Token(BaseModel):
    """Token response schema."""

    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Token payload data schema."""

    user_id: Optional[str] = None
    email: Optional[str] = None


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.jwt_expiration_minutes
        )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT access token.

    Args:
        token: The JWT token string to decode

    Returns:
        TokenData with user information, or None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    user_id: str = payload.get("sub")
    if user_id is None:
        return None
    return TokenData(user_id=user_id, email=payload.get("email"))


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Get a user by email address (case-insensitive)."""
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    """Get a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """
    Authenticate a user with email and password.

    Inactive and deleted users never authenticate.

    Args:
        db: Database session
        email: User's email address
        password: Plain text password to verify

    Returns:
        User object if authentication successful, None otherwise
    """
    user = await get_user_by_email(db, email)

    if not user or not user.is_active or user.deleted_at is not None:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if password_needs_rehash(user.password_hash):
        user.password_hash = get_password_hash(password)
        await db.commit()
        logger.info(f"Upgraded password hash for {user.email}")

    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the JWT token.

    Raises:
        HTTPException: 401 if the token is invalid or the user is gone or inactive
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = decode_access_token(token)
    if token_data is None or token_data.user_id is None:
        raise credentials_exception

    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        raise credentials_exception

    user = await get_user_by_id(db, user_id)
    if user is None or not user.is_active or user.deleted_at is not None:
        raise credentials_exception

    return user


async def get_current_actor(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Resolve the authenticated user's permission slugs once for this request."""
    return await build_actor(db, current_user)


def require_permission(*slugs: str) -> Callable:
    """
    Build a dependency that admits actors holding any of ``slugs``.

    Usage:
        @router.post("/api/projects")
        async def create(actor: Actor = Depends(require_permission("projects.create"))):
            ...
    """

    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.has_any_permission(slugs):
            raise ForbiddenError(
                f"Permission denied. Requires: {' or '.join(slugs)}",
                {"required": list(slugs)},
            )
        return actor

    return dependency
