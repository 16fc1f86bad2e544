"""
ORM for the users that groups refer to.
"""

from typing import TYPE_CHECKING

from sqlmodel import Field, Relationship, SQLModel

from grouper.core.user import UserData
from grouper.core.uuid import UUID, uuid7
from grouper.database.group import GroupMembership

if TYPE_CHECKING:
    from .group import Group


class User(SQLModel, table=True):
    user_id: UUID = Field(primary_key=True, default_factory=uuid7)

    user_name: str = Field(unique=True)
    full_name: str | None = None
    email: str | None = None

    groups: list["Group"] = Relationship(
        back_populates="members",
        link_model=GroupMembership,
        sa_relationship_kwargs=dict(lazy="joined"),
    )

    def to_core(self, include_groups=True) -> UserData:
        return UserData(
            user_id=self.user_id,
            user_name=self.user_name,
            full_name=self.full_name,
            email=self.email,
            group_names=[x.name for x in self.groups] if include_groups else None,
            group_ids=[str(x.group_id) for x in self.groups]
            if include_groups
            else None,
        )
