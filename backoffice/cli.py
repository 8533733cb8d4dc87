"""CLI commands for management tasks."""

import asyncio
import sys

from sqlalchemy import select

from backoffice.core.database import Base, async_session_maker, engine
from backoffice.core.permissions import Role
from backoffice.core.security import get_password_hash
from backoffice.models.user import User
from backoffice.schemas.validators import validate_email


async def init_db() -> None:
    """Create the database tables."""
    # Importing the models registers them on the metadata
    import backoffice.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    print("✓ Tables created")


async def create_admin(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> None:
    """Create an administrator account."""
    try:
        email = validate_email(email)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    async with async_session_maker() as db:
        result = await db.execute(
            select(User).where(User.email == email)
        )
        if result.scalar_one_or_none():
            print(f"Error: {email} is already registered!")
            sys.exit(1)

        admin = User(
            email=email,
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=Role.ADMIN.value,
        )

        db.add(admin)
        await db.commit()
        await db.refresh(admin)

        print("✓ Administrator created successfully!")
        print(f"  ID: {admin.id}")
        print(f"  Name: {admin.full_name}")
        print(f"  Email: {admin.email}")


def main() -> None:
    """CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: python -m backoffice.cli <command>")
        print("Commands:")
        print("  init-db")
        print("  create-admin <email> <password> <first_name> <last_name>")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_db())
    elif command == "create-admin":
        if len(sys.argv) != 6:
            print("Usage: python -m backoffice.cli create-admin <email> <password> <first_name> <last_name>")
            sys.exit(1)

        _, _, email, password, first_name, last_name = sys.argv
        asyncio.run(create_admin(email, password, first_name, last_name))
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
