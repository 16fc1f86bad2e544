"""
Service layer for groups.

Operations flush their changes but never commit; callers own the transaction:

    async with manager.session() as conn:
        async with conn.begin():
            group = await groups_service.create(attrs, user, conn=conn, log=log)
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from grouper.core.group import (
    TAKEN,
    FieldErrors,
    GroupAttributes,
    GroupData,
    validate_attributes,
)
from grouper.core.uuid import UUID
from grouper.database.group import Group
from grouper.database.user import User

from . import user as user_service


class GroupNotFound(Exception):
    pass


class GroupExistsError(Exception):
    pass


async def _flush_unique(name: str, conn: AsyncSession):
    try:
        await conn.flush()
    except IntegrityError as e:
        raise GroupExistsError(f"Group {name} already exists") from e


async def list_groups(
    user: User,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> list[Group]:
    """
    Get the groups that a user is a member of.

    Parameters
    ----------
    user: User
        The user whose memberships to list.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Returns
    -------
    list[Group]
        The groups, in no particular order.
    """
    log = log.bind(user_id=user.user_id)
    result = await conn.execute(
        select(Group).where(Group.members.any(User.user_id == user.user_id))
    )
    groups = list(result.unique().scalars().all())
    await log.adebug("group.listed", number_of_groups=len(groups))
    return groups


async def read_by_id(
    group_id: UUID,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Read a group by its ID.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    """
    log = log.bind(group_id=group_id)
    result = await conn.execute(select(Group).where(Group.group_id == group_id))
    group = result.unique().scalar_one_or_none()
    if not group:
        await log.ainfo("group.not_found")
        raise GroupNotFound(f"Group with id {group_id} not found")
    await log.adebug("group.found")
    return group


async def read_by_name(
    name: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Read a group by its name.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    """
    name = name.strip()
    log = log.bind(group_name=name)
    result = await conn.execute(select(Group).where(Group.name == name))
    group = result.unique().scalar_one_or_none()
    if not group:
        await log.ainfo("group.not_found")
        raise GroupNotFound(f"Group with name {name} not found")
    await log.adebug("group.found")
    return group


async def create(
    attrs: Mapping[str, Any],
    user: User,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group | FieldErrors:
    """
    Create a new group, with the requesting user as its first member.

    The insert and the membership are written under a single savepoint: if
    adding the user fails, the group is rolled back too.

    Parameters
    ----------
    attrs: Mapping[str, Any]
        Candidate attributes for the group (`name`, `description`).
    user: User
        The user creating the group.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Returns
    -------
    Group | FieldErrors
        The new group, or the reasons the attributes were rejected. A name
        that is already in use is reported as a field error.

    Raises
    ------
    user_service.UserNotFound
        If the user does not exist. No group is persisted.
    sqlalchemy.exc.SQLAlchemyError
        If writing the membership fails. No group is persisted.
    """
    log = log.bind(user_id=user.user_id)

    validated = validate_attributes(attrs)

    if isinstance(validated, FieldErrors):
        await log.ainfo("group.create.invalid", errors=validated.errors)
        return validated

    log = log.bind(group_name=validated.name)

    try:
        async with conn.begin_nested():
            group = Group(
                name=validated.name,
                description=validated.description,
                created_at=datetime.now(tz=timezone.utc),
                members=[],
            )
            conn.add(group)
            await _flush_unique(validated.name, conn)
            await add_member(group=group, user=user, conn=conn, log=log)
    except GroupExistsError:
        await log.ainfo("group.exists")
        return FieldErrors(errors={"name": [TAKEN]})
    except (user_service.UserNotFound, SQLAlchemyError) as e:
        await log.ainfo("group.create.rolled_back", error=str(e))
        raise e

    log = log.bind(group_id=group.group_id)
    await log.ainfo("group.created")

    return group


async def update(
    group: Group,
    attrs: Mapping[str, Any],
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group | FieldErrors:
    """
    Update the attributes of a group. Values missing from `attrs` keep their
    current value; the group ID can never change.

    Returns
    -------
    Group | FieldErrors
        The updated group, or the reasons the attributes were rejected. On
        rejection the group is left as it was.
    """
    log = log.bind(group_id=group.group_id)

    validated = validate_attributes(attrs, current=group.to_attributes())

    if isinstance(validated, FieldErrors):
        await log.ainfo("group.update.invalid", errors=validated.errors)
        return validated

    try:
        async with conn.begin_nested():
            group.name = validated.name
            group.description = validated.description
            group.updated_at = datetime.now(tz=timezone.utc)
            await _flush_unique(validated.name, conn)
    except GroupExistsError:
        # Rolling back the savepoint expired our changes; reload what is stored.
        await conn.refresh(group)
        await log.ainfo("group.exists", group_name=validated.name)
        return FieldErrors(errors={"name": [TAKEN]})

    await log.ainfo("group.updated", group_name=group.name)

    return group


async def delete_group(
    group: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> GroupData:
    """
    Delete a group and all of its memberships.

    Membership rows are removed here rather than left to the foreign key
    cascade, which not every database enforces (SQLite needs it switched on).

    Returns
    -------
    GroupData
        The state of the group immediately before it was deleted.
    """
    log = log.bind(group_id=group.group_id)

    await conn.refresh(group, attribute_names=["members"])
    final = group.to_core()

    group.members.clear()
    await conn.flush()
    await conn.delete(group)
    await conn.flush()

    await log.ainfo("group.deleted", number_of_members=len(final.members))

    return final


def change(group: Group) -> GroupAttributes:
    """
    The current editable attributes of a group, the baseline that edits are
    validated against.
    """
    return group.to_attributes()


async def add_member(
    group: Group,
    user: User,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> User:
    """
    Add a user to a group. Adding an existing member does nothing.

    Parameters
    ----------
    group: Group
        The group to join.
    user: User
        The user to add.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Returns
    -------
    User
        The user, with their memberships loaded.

    Raises
    ------
    user_service.UserNotFound
        If the user does not exist.
    """
    log = log.bind(group_id=group.group_id, user_id=user.user_id)
    user = await user_service.read_with_groups(user_id=user.user_id, conn=conn)
    if group not in user.groups:
        user.groups.append(group)
        await conn.flush()
        await log.ainfo("group.user_added")
    else:
        await log.ainfo("group.user_already_member")
    return user
