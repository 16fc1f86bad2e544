"""
Serialized view of a user, as seen from the group side.
"""

from pydantic import BaseModel

from grouper.core.uuid import UUID


class UserData(BaseModel):
    user_id: UUID
    user_name: str
    full_name: str | None
    email: str | None
    group_names: list[str] | None
    # UUIDs are not JSON serializable, so we use strings
    group_ids: list[str] | None
