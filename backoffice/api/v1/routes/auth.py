"""Authentication routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.deps import CurrentUser, require_permission
from backoffice.core.security import create_access_token
from backoffice.models.user import User
from backoffice.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from backoffice.services.auth import authenticate_user, register_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(user: User | None) -> LoginResponse:
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return LoginResponse(token=token, role=user.role, full_name=user.full_name)


def _build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        full_name=user.full_name,
        is_active=user.is_active,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> LoginResponse:
    """Login with email and password."""
    user = await authenticate_user(db, login_data.email, login_data.password)
    return _issue_token(user)


@router.post("/login/form", response_model=LoginResponse)
async def login_form(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> LoginResponse:
    """Login with OAuth2 form (for Swagger UI). Username = email."""
    user = await authenticate_user(db, form_data.username.strip().lower(), form_data.password)
    return _issue_token(user)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("users:write"))],
) -> UserResponse:
    """Create a back-office account. Administrators only."""
    user = await register_user(db, data)
    return _build_user_response(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: CurrentUser) -> UserResponse:
    """Account of the caller."""
    return _build_user_response(current_user)
