"""
Core group data models and attribute validation.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import ErrorDetails

from grouper.core.uuid import UUID

from .user import UserData

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 2048

BLANK = "can't be blank"
INVALID = "is invalid"
TAKEN = "has already been taken"


class GroupData(BaseModel):
    group_id: UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime | None
    members: list[UserData]

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        """
        Timestamps are written in UTC, but SQLite hands them back naive.
        """
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class GroupAttributes(BaseModel):
    """
    The user-editable attributes of a group. Identifiers and timestamps are
    managed by the service layer and are ignored if present in the input.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)


class FieldErrors(BaseModel):
    """
    Validation failure: a mapping from field name to the messages that
    apply to it.
    """

    errors: dict[str, list[str]]

    def add(self, field: str, message: str):
        self.errors.setdefault(field, []).append(message)


def _message(error: ErrorDetails) -> str:
    match error["type"]:
        case "missing" | "string_too_short":
            return BLANK
        case "string_too_long":
            return f"should be at most {error['ctx']['max_length']} character(s)"
        case _ if error.get("input") is None:
            return BLANK
        case _:
            return INVALID


def validate_attributes(
    attrs: Mapping[str, Any], current: GroupAttributes | None = None
) -> GroupAttributes | FieldErrors:
    """
    Validate candidate group attributes.

    Parameters
    ----------
    attrs: Mapping[str, Any]
        The candidate values, keyed by field name.
    current: GroupAttributes | None
        The existing attributes of the group being edited, if any. Values in
        `attrs` override these.

    Returns
    -------
    GroupAttributes | FieldErrors
        The accepted attributes, or the field-level error messages.
    """
    candidate = dict(current.model_dump()) if current is not None else {}
    candidate.update({str(k): v for k, v in attrs.items()})

    try:
        return GroupAttributes.model_validate(candidate)
    except ValidationError as e:
        errors = FieldErrors(errors={})
        for error in e.errors():
            field = ".".join(str(x) for x in error["loc"]) or "__root__"
            errors.add(field, _message(error))
        return errors
