"""Authentication service."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ConflictError
from backoffice.core.security import get_password_hash, verify_password
from backoffice.models.user import User
from backoffice.schemas.auth import RegisterRequest


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get user by email."""
    result = await db.execute(
        select(User).where(User.email == email)
    )
    return result.scalar_one_or_none()


async def authenticate_user(
    db: AsyncSession,
    email: str,
    password: str,
) -> User | None:
    """Authenticate user with email and password."""
    user = await get_user_by_email(db, email)

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """Create a back-office account."""
    if await get_user_by_email(db, data.email):
        raise ConflictError(f"An account already exists for {data.email}")

    user = User(
        email=data.email,
        password_hash=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user
