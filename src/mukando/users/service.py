"""User reads and writes against the mirror."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from mukando.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class UserAlreadyExistsError(Exception):
    """A user row already exists for the address."""


async def get_user(db: AsyncSession, address: str) -> User | None:
    result = await db.execute(select(User).where(User.address == address))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    """All users, newest first."""
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def get_or_create_user(db: AsyncSession, address: str) -> tuple[User, bool]:
    """Return the user for ``address``, adding a bare row if absent (not committed).

    Concurrent callers for the same new address both succeed; exactly one
    of them sees ``created=True``.
    """
    user = await get_user(db, address)
    if user is not None:
        return user, False

    stmt = sqlite_insert(User).values(address=address, is_member=False)
    stmt = stmt.on_conflict_do_nothing(index_elements=["address"])
    result = await db.execute(stmt)
    user = (await db.execute(select(User).where(User.address == address))).scalar_one()
    return user, result.rowcount == 1


async def create_user(
    db: AsyncSession,
    address: str,
    username: str | None = None,
    email: str | None = None,
) -> User:
    """Insert a new user and commit.

    Raises:
        UserAlreadyExistsError: If the address is already mirrored. The
            existing row is left untouched.
    """
    if await get_user(db, address) is not None:
        raise UserAlreadyExistsError(address)

    user = User(address=address, username=username or None, email=email or None)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise UserAlreadyExistsError(address) from e
    await db.refresh(user)
    logger.info("user_created", address=address)
    return user
