"""
Meta functionality for the database.
"""

from .group import Group, GroupMembership
from .user import User

ALL_TABLES = (
    Group,
    GroupMembership,
    User,
)
