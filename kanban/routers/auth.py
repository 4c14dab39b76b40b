"""Authentication API endpoints.

Provides login and profile access. Uses JWT-based authentication;
accounts are created by administrators through the users endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..permissions import ALL_PERMISSION_SLUGS
from ..schemas.user import CurrentUserResponse
from ..services.auth_service import (
    Token,
    authenticate_user,
    create_access_token,
    get_current_actor,
    get_current_user,
)
from ..services.permission_service import Actor

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=Token,
    summary="Login and get access token",
    description="Authenticate with email and password to receive a JWT access token.",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: AsyncSession = Depends(get_db),
) -> Token:
    """
    Login with email and password.

    Uses OAuth2 password flow with form data:
    - **username**: Email address (OAuth2 names the field 'username')
    - **password**: User's password
    """
    user = await authenticate_user(db, form_data.username, form_data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={
            "sub": str(user.id),
            "email": user.email,
        }
    )

    return Token(access_token=access_token)


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    summary="Get current user profile",
    description="Profile of the authenticated user with effective permissions.",
    responses={
        200: {"description": "User profile retrieved successfully"},
        401: {"description": "Not authenticated"},
    },
)
async def get_me(
    current_user: User = Depends(get_current_user),
    actor: Actor = Depends(get_current_actor),
) -> CurrentUserResponse:
    """
    Get the current authenticated user's profile.

    Super admins are reported as holding every catalogue permission.
    """
    permissions = ALL_PERMISSION_SLUGS if actor.is_super_admin else actor.permissions
    profile = CurrentUserResponse.model_validate(current_user)
    return profile.model_copy(update={"permissions": sorted(permissions)})
