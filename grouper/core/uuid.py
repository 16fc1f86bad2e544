"""
UUID helpers. Group and user identifiers are UUIDv7 so that they sort by
creation time; uuid7 is not in the standard library before 3.14.
"""

from uuid import UUID as UUID

from uuid_extensions import uuid7 as uuid7

__all__ = ["UUID", "uuid7"]
