"""
Service layer for users. Users are owned by the identity system; groups only
need to look them up and attach memberships to them.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from grouper.core.uuid import UUID
from grouper.database.user import User


class UserNotFound(Exception):
    pass


class UserExistsError(Exception):
    pass


async def create(
    user_name: str,
    email: str | None,
    full_name: str | None,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> User:
    """
    Creates a user, if they do not exist.

    Raises
    ------
    UserExistsError
        If a user with this user name already exists.
    """
    user_name = user_name.strip().lower().replace(" ", "_")

    log = log.bind(user_name=user_name, email=email)

    user = User(user_name=user_name, email=email, full_name=full_name, groups=[])

    try:
        async with conn.begin_nested():
            conn.add(user)
            await conn.flush()
    except IntegrityError:
        await log.ainfo("user.create.exists")
        raise UserExistsError(f"User with user name {user_name} already exists")

    log = log.bind(user_id=user.user_id)
    await log.ainfo("user.created")

    return user


async def read_by_id(user_id: UUID, conn: AsyncSession) -> User:
    res = await conn.get(User, user_id)

    if res is None:
        raise UserNotFound(f"User with ID {user_id} not found in the database")

    return res


async def read_by_name(user_name: str, conn: AsyncSession) -> User:
    user_name = user_name.strip().lower().replace(" ", "_")

    query = select(User).filter(User.user_name == user_name)
    res = (await conn.execute(query)).unique().scalar_one_or_none()

    if res is None:
        raise UserNotFound(f"User with name {user_name} not found in the database")

    return res


async def read_with_groups(user_id: UUID, conn: AsyncSession) -> User:
    """
    Read a user with their group memberships freshly loaded from the database,
    replacing whatever the session already holds for them.
    """
    query = (
        select(User)
        .filter(User.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    res = (await conn.execute(query)).unique().scalar_one_or_none()

    if res is None:
        raise UserNotFound(f"User with ID {user_id} not found in the database")

    return res


async def delete(user_name: str, conn: AsyncSession, log: FilteringBoundLogger):
    """
    Deletes the user. Their memberships go with them.
    """
    user = await read_by_name(user_name=user_name, conn=conn)

    log = log.bind(user_id=user.user_id, number_of_groups=len(user.groups))

    user.groups.clear()
    await conn.flush()
    await conn.delete(user)
    await conn.flush()

    await log.ainfo("user.deleted")
