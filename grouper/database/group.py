"""
Group ORM
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, Relationship, SQLModel

from grouper.core.group import GroupAttributes, GroupData
from grouper.core.uuid import UUID, uuid7

if TYPE_CHECKING:
    from .user import User


class GroupMembership(SQLModel, table=True):
    """
    A record of a user's group membership. The composite primary key means a
    user can appear in a group at most once.
    """

    __tablename__ = "group_membership"

    user_id: Optional[UUID] = Field(
        primary_key=True, foreign_key="user.user_id", ondelete="CASCADE"
    )
    group_id: Optional[UUID] = Field(
        primary_key=True, foreign_key="group.group_id", ondelete="CASCADE"
    )


class Group(SQLModel, table=True):
    group_id: UUID = Field(primary_key=True, default_factory=uuid7)

    name: str = Field(unique=True)
    description: str | None = None

    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    updated_at: datetime | None = Field(
        sa_column=Column(DateTime(timezone=True)), default=None
    )

    members: list["User"] = Relationship(
        back_populates="groups",
        link_model=GroupMembership,
        sa_relationship_kwargs=dict(lazy="joined"),
    )

    def to_attributes(self) -> GroupAttributes:
        """
        The editable attributes of this group, as the validator sees them.
        """
        return GroupAttributes(name=self.name, description=self.description)

    def to_core(self) -> GroupData:
        """
        Convert this Group ORM object to a GroupData core object.
        """
        return GroupData(
            group_id=self.group_id,
            name=self.name,
            description=self.description,
            created_at=self.created_at,
            updated_at=self.updated_at,
            members=[member.to_core(include_groups=False) for member in self.members],
        )
