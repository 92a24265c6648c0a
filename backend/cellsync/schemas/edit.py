"""
CellSync Backend — Edit Log Request/Response Schemas
======================================================

What:  Pydantic models for the edit-submission body and the EditRecord JSON
       returned by the history endpoint and pushed over the live channel.
How:   Field names are snake_case in Python and camelCase on the wire
       (spreadsheetId, userId, newValue), matching the browser client.
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cellsync.schemas.common import as_utc

# One to three column letters followed by a 1-based row number: A1, AB12, ZZZ9
CELL_ADDRESS_PATTERN = re.compile(r"^[A-Z]{1,3}[1-9][0-9]*$")


class EditCreate(BaseModel):
    """
    Body of POST /api/realtime/edits.

    The gateway owns cell-address format validation; the edit log itself
    only rejects blank fields.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    spreadsheet_id: str = Field(min_length=1, max_length=64)
    user_id: str = Field(min_length=1, max_length=64)
    cell: str = Field(min_length=1, max_length=16, description="Cell address, e.g. A1")
    new_value: str = Field(min_length=1, description="Value written to the cell")

    @field_validator("cell")
    @classmethod
    def validate_cell_address(cls, v: str) -> str:
        """Normalises to upper case and checks the column+row encoding."""
        normalized = v.strip().upper()
        if not CELL_ADDRESS_PATTERN.match(normalized):
            raise ValueError(f"Invalid cell address '{v}'. Expected column letters followed by a row number, e.g. A1")
        return normalized


class EditRecordResponse(BaseModel):
    """
    Wire representation of one persisted edit.

    Returned by POST /api/realtime/edits and GET /api/realtime/history/{id},
    and sent as-is to every live-channel subscriber.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int = Field(description="Store-assigned identifier")
    spreadsheet_id: str
    user_id: str
    cell: str
    new_value: str
    timestamp: datetime = Field(description="Server-assigned creation time")

    timestamp_as_utc = field_validator("timestamp")(as_utc)

    def to_message(self) -> dict:
        """JSON-ready dict in wire (camelCase) form."""
        return self.model_dump(mode="json", by_alias=True)
