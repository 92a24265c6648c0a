"""
CellSync Backend — Edit Store
===============================

What:  Persistence layer for the append-only `realtime_edits` table.
How:   Thin async SQLAlchemy statements; every driver failure is wrapped as
       StoreUnavailable by `store_errors`.
Who:   Used only by EditLogService.

Guarantees delegated to the database:
    - Unique, increasing `id` from the identity column / sequence
    - `timestamp` assigned by the server at insert time
    - All-or-nothing inserts (the surrounding transaction either commits
      or rolls back)

Read ordering:
    ORDER BY timestamp DESC, id DESC

    Rows written within the same clock tick share a timestamp; the id
    tiebreak keeps the order total and matches insertion order.

Watermark paging:
    `before` names an existing edit id. The page holds rows strictly older
    than that edit in (timestamp, id) order. The watermark's timestamp is
    read through a correlated scalar subquery, so the comparison happens
    entirely inside the database on identically stored values.
"""

import logging
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from cellsync.database import store_errors
from cellsync.models.edit import EditRecord

logger = logging.getLogger(__name__)


class EditStore:
    """Append and range-read access to edit records. Never updates or deletes."""

    async def insert(
        self,
        db: AsyncSession,
        spreadsheet_id: str,
        user_id: str,
        cell: str,
        new_value: str,
    ) -> EditRecord:
        """
        Insert one edit and load its store-assigned id and timestamp.

        The row is flushed inside the caller's transaction; it becomes
        durable when the caller commits.
        """
        record = EditRecord(
            spreadsheet_id=spreadsheet_id,
            user_id=user_id,
            cell=cell,
            new_value=new_value,
        )
        with store_errors("append_edit"):
            db.add(record)
            await db.flush()
            await db.refresh(record)
        return record

    async def commit(self, db: AsyncSession) -> None:
        with store_errors("commit_edit"):
            await db.commit()

    async def get(
        self,
        db: AsyncSession,
        spreadsheet_id: str,
        edit_id: int,
    ) -> Optional[EditRecord]:
        """Fetch one edit of a spreadsheet, or None."""
        with store_errors("get_edit"):
            result = await db.execute(
                select(EditRecord).where(
                    EditRecord.id == edit_id,
                    EditRecord.spreadsheet_id == spreadsheet_id,
                )
            )
            return result.scalar_one_or_none()

    async def list_newest_first(
        self,
        db: AsyncSession,
        spreadsheet_id: str,
        limit: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> List[EditRecord]:
        """
        Edits of one spreadsheet ordered by (timestamp DESC, id DESC).

        Args:
            limit: Maximum rows; None returns the whole log.
            before_id: Only rows ordered strictly after this edit. The
                caller checks that the edit exists.
        """
        query = select(EditRecord).where(EditRecord.spreadsheet_id == spreadsheet_id)

        if before_id is not None:
            watermark = aliased(EditRecord)
            watermark_ts = (
                select(watermark.timestamp)
                .where(watermark.id == before_id)
                .scalar_subquery()
            )
            query = query.where(
                or_(
                    EditRecord.timestamp < watermark_ts,
                    and_(
                        EditRecord.timestamp == watermark_ts,
                        EditRecord.id < before_id,
                    ),
                )
            )

        query = query.order_by(EditRecord.timestamp.desc(), EditRecord.id.desc())
        if limit is not None:
            query = query.limit(limit)

        with store_errors("list_edits"):
            result = await db.execute(query)
            return list(result.scalars().all())


# ── Singleton Instance ────────────────────────────────────────────────────
edit_store = EditStore()
