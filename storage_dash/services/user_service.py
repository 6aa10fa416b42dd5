"""User service: account creation, credential checks, profile and role changes.

Passwords are hashed here, explicitly, before the row is inserted.
"""

import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash import timeutils
from storage_dash.auth.passwords import hash_password, verify_password
from storage_dash.errors import ConflictError, NotFoundError
from storage_dash.models.user import User

logger = logging.getLogger(__name__)


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    role: str = "staff",
    is_active: bool = True,
) -> User:
    """Insert a new user after checking username/email uniqueness."""
    result = await db.execute(select(User).where(or_(User.email == email, User.username == username)))
    existing = result.scalars().first()
    if existing is not None:
        if existing.email == email:
            raise ConflictError("Email already registered")
        raise ConflictError("Username already taken")

    user = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("Registered user %s (%s) with role %s", user.id, user.username, user.role)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    """Return the user if the credentials match, else ``None``."""
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


async def record_login(db: AsyncSession, user: User) -> User:
    user.last_login = timeutils.utc_now().replace(tzinfo=None)  # naive UTC
    db.add(user)
    await db.flush()
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    username: str | None = None,
    email: str | None = None,
) -> User:
    """Change username and/or email, refusing values held by another account."""
    if email and email != user.email:
        taken = await db.execute(select(User.id).where(User.email == email))
        if taken.scalar_one_or_none() is not None:
            raise ConflictError("Email already in use")
        user.email = email

    if username and username != user.username:
        taken = await db.execute(select(User.id).where(User.username == username))
        if taken.scalar_one_or_none() is not None:
            raise ConflictError("Username already taken")
        user.username = username

    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def change_password(db: AsyncSession, user: User, new_password: str) -> None:
    user.hashed_password = hash_password(new_password)
    db.add(user)
    await db.flush()
    logger.info("Password changed for user %s", user.id)


async def get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User")
    return user


async def set_role(db: AsyncSession, user: User, role: str) -> User:
    previous = user.role
    user.role = role
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info("Role of user %s changed from %s to %s", user.id, previous, role)
    return user
