"""Dependencies for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import settings
from backoffice.core.database import get_db
from backoffice.core.permissions import has_permission
from backoffice.core.security import decode_access_token
from backoffice.models.user import User

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login/form",
    auto_error=False,
)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_user(db: AsyncSession, token: str) -> User:
    payload = decode_access_token(token)
    if payload is None or payload.get("type") != "access":
        raise _credentials_exception()

    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise _credentials_exception()

    try:
        pk = int(user_id)
    except ValueError:
        raise _credentials_exception()

    result = await db.execute(select(User).where(User.id == pk))
    user = result.scalar_one_or_none()

    if user is None:
        raise _credentials_exception()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )

    return user


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get current authenticated user from JWT token."""
    if not token:
        raise _credentials_exception()
    return await _resolve_user(db, token)


async def get_reader(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """
    Caller of a read-only endpoint.

    Anonymous callers are accepted while ALLOW_ANONYMOUS_READS is on; a token,
    when sent, must still be valid.
    """
    if token:
        return await _resolve_user(db, token)
    if settings.ALLOW_ANONYMOUS_READS:
        return None
    raise _credentials_exception()


def require_permission(permission: str):
    """Dependency factory to check if user has a specific permission."""

    async def permission_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if not has_permission(current_user.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return current_user

    return permission_checker


# Common dependency aliases
CurrentUser = Annotated[User, Depends(get_current_user)]
Reader = Annotated[User | None, Depends(get_reader)]
