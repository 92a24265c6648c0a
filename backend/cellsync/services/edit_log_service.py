"""
CellSync Backend — Edit Log Service
=====================================

What:  Validates edit submissions, appends them through the EditStore,
       publishes committed records to the ChangeNotifier, and serves history.
Who:   Called by the realtime route handlers.

Append Flow:
    ┌──────────┐    ┌────────────┐    ┌────────────┐    ┌──────────────┐
    │ Validate │───▶│  Insert    │───▶│  Commit    │───▶│  Publish     │
    │  fields  │    │ (EditStore)│    │ (EditStore)│    │ (Notifier)   │
    └──────────┘    └────────────┘    └────────────┘    └──────────────┘

    Publishing happens only after the commit succeeds, so a subscriber can
    never observe an edit that was later rolled back.

Conflicts:
    None are detected. Two writes to the same cell are both stored; readers
    that want the current value take the newest record per cell.

The user id is taken as supplied by the gateway, which has already
authenticated the caller.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cellsync.config import settings
from cellsync.exceptions import NotFoundError, ValidationError
from cellsync.schemas.edit import EditRecordResponse
from cellsync.services.change_notifier import ChangeNotifier, change_notifier
from cellsync.services.edit_store import EditStore, edit_store

logger = logging.getLogger(__name__)


def _require_text(value: object, field: str, allow_blank: bool = False) -> str:
    if not isinstance(value, str) or value == "" or (not allow_blank and not value.strip()):
        raise ValidationError(
            message=f"'{field}' is required and must be a non-empty string",
            field=field,
        )
    return value


class EditLogService:
    """
    Append-only edit log for spreadsheets.

    Stateless apart from its collaborators; the session is passed per call.
    """

    def __init__(
        self,
        store: Optional[EditStore] = None,
        notifier: Optional[ChangeNotifier] = None,
    ):
        self.store = store or edit_store
        self.notifier = notifier or change_notifier

    async def append(
        self,
        db: AsyncSession,
        spreadsheet_id: str,
        user_id: str,
        cell: str,
        new_value: str,
    ) -> EditRecordResponse:
        """
        Persist one cell edit and fan it out to live subscribers.

        ``new_value`` may contain only whitespace (a cell can hold a space);
        the other fields must contain a non-whitespace character.

        Returns:
            The stored record including its server-assigned id and timestamp.

        Raises:
            ValidationError: A field is missing, not a string, or empty.
                Nothing is stored.
            StoreUnavailable: Insert or commit failed. Nothing is stored.
        """
        _require_text(spreadsheet_id, "spreadsheetId")
        _require_text(user_id, "userId")
        _require_text(cell, "cell")
        _require_text(new_value, "newValue", allow_blank=True)

        record = await self.store.insert(
            db,
            spreadsheet_id=spreadsheet_id,
            user_id=user_id,
            cell=cell,
            new_value=new_value,
        )
        await self.store.commit(db)

        response = EditRecordResponse.model_validate(record)
        logger.info(
            "Edit %d appended: spreadsheet=%s cell=%s user=%s",
            response.id,
            spreadsheet_id,
            cell,
            user_id,
        )

        await self.notifier.publish(response)
        return response

    async def history(
        self,
        db: AsyncSession,
        spreadsheet_id: str,
        limit: Optional[int] = None,
        before: Optional[int] = None,
    ) -> List[EditRecordResponse]:
        """
        Edits of a spreadsheet, newest first.

        Ordering is strictly descending by (timestamp, id). Each call is
        independent: to page, pass the id of the last record received as
        ``before``.

        Args:
            limit: Page size, 1..history_max_limit. None applies
                history_default_limit (capped at history_max_limit).
            before: Id of an edit of this spreadsheet; only older edits are
                returned.

        Raises:
            ValidationError: Blank spreadsheet id or limit out of range.
            NotFoundError: ``before`` is not an edit of this spreadsheet.
            StoreUnavailable: The store could not be read.
        """
        _require_text(spreadsheet_id, "spreadsheetId")

        if limit is not None and not 1 <= limit <= settings.history_max_limit:
            raise ValidationError(
                message=f"'limit' must be between 1 and {settings.history_max_limit}",
                field="limit",
            )
        if limit is None:
            limit = min(settings.history_default_limit, settings.history_max_limit)

        if before is not None:
            watermark = await self.store.get(db, spreadsheet_id, before)
            if watermark is None:
                raise NotFoundError(resource="edit", resource_id=str(before))

        records = await self.store.list_newest_first(
            db,
            spreadsheet_id,
            limit=limit,
            before_id=before,
        )
        return [EditRecordResponse.model_validate(record) for record in records]


# ── Singleton Instance ────────────────────────────────────────────────────
edit_log_service = EditLogService()
