"""
CellSync Backend — Spreadsheet and Permission Schemas
=======================================================

What:  API contracts for spreadsheet CRUD and permission management.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cellsync.schemas.common import as_utc


class PermissionRole(str, Enum):
    """Roles a user can hold on a single spreadsheet."""
    VIEWER = "viewer"
    EDITOR = "editor"
    OWNER = "owner"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SpreadsheetCreate(_CamelModel):
    title: str = Field(min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Title must not be blank")
        return stripped


class SpreadsheetRename(SpreadsheetCreate):
    pass


class SpreadsheetResponse(_CamelModel):
    id: uuid.UUID
    title: str
    owner_id: str
    created_at: datetime

    created_at_as_utc = field_validator("created_at")(as_utc)


class PermissionGrant(_CamelModel):
    user_id: str = Field(min_length=1, max_length=64)
    role: PermissionRole = PermissionRole.VIEWER


class PermissionUpdate(_CamelModel):
    role: PermissionRole


class PermissionResponse(_CamelModel):
    id: uuid.UUID
    spreadsheet_id: uuid.UUID
    user_id: str
    role: PermissionRole
    created_at: datetime

    created_at_as_utc = field_validator("created_at")(as_utc)
