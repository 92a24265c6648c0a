"""
CellSync Backend — Spreadsheet Service
========================================

What:  Create, list, fetch, rename and delete spreadsheets.
Who:   Called by the spreadsheets router; PermissionService reuses the
       lookup and access checks.

Access rules (role-string checks only):
    view   → owner, any permission holder, or Role.ADMIN
    manage → owner or Role.ADMIN (rename, delete, permission changes)

Deleting a spreadsheet removes its permissions. Its edit log is append-only
and is left untouched.
"""

import logging
import uuid
from typing import List

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cellsync.database import store_errors
from cellsync.exceptions import NotFoundError, PermissionDenied
from cellsync.models.spreadsheet import Permission, Spreadsheet
from cellsync.schemas.auth import AuthenticatedUser
from cellsync.schemas.spreadsheet import SpreadsheetResponse

logger = logging.getLogger(__name__)


class SpreadsheetService:

    async def create(
        self,
        db: AsyncSession,
        title: str,
        owner: AuthenticatedUser,
    ) -> SpreadsheetResponse:
        spreadsheet = Spreadsheet(title=title, owner_id=owner.id)
        with store_errors("create_spreadsheet"):
            db.add(spreadsheet)
            await db.flush()
        logger.info("Spreadsheet %s created by %s", spreadsheet.id, owner.id)
        return SpreadsheetResponse.model_validate(spreadsheet)

    async def list_for_user(self, db: AsyncSession, user_id: str) -> List[SpreadsheetResponse]:
        """Spreadsheets the user owns or holds a permission on, oldest first."""
        shared = select(Permission.spreadsheet_id).where(Permission.user_id == user_id)
        query = (
            select(Spreadsheet)
            .where(or_(Spreadsheet.owner_id == user_id, Spreadsheet.id.in_(shared)))
            .order_by(Spreadsheet.created_at.asc(), Spreadsheet.id.asc())
        )
        with store_errors("list_spreadsheets"):
            result = await db.execute(query)
            spreadsheets = result.scalars().all()
        return [SpreadsheetResponse.model_validate(s) for s in spreadsheets]

    async def get(
        self,
        db: AsyncSession,
        spreadsheet_id: uuid.UUID,
        actor: AuthenticatedUser,
    ) -> SpreadsheetResponse:
        spreadsheet = await self.get_model(db, spreadsheet_id)
        await self.ensure_can_view(db, spreadsheet, actor)
        return SpreadsheetResponse.model_validate(spreadsheet)

    async def rename(
        self,
        db: AsyncSession,
        spreadsheet_id: uuid.UUID,
        title: str,
        actor: AuthenticatedUser,
    ) -> SpreadsheetResponse:
        spreadsheet = await self.get_model(db, spreadsheet_id)
        self.ensure_can_manage(spreadsheet, actor)
        spreadsheet.title = title
        with store_errors("rename_spreadsheet"):
            await db.flush()
        logger.info("Spreadsheet %s renamed by %s", spreadsheet_id, actor.id)
        return SpreadsheetResponse.model_validate(spreadsheet)

    async def delete(
        self,
        db: AsyncSession,
        spreadsheet_id: uuid.UUID,
        actor: AuthenticatedUser,
    ) -> None:
        spreadsheet = await self.get_model(db, spreadsheet_id)
        self.ensure_can_manage(spreadsheet, actor)
        with store_errors("delete_spreadsheet"):
            await db.execute(delete(Permission).where(Permission.spreadsheet_id == spreadsheet_id))
            await db.delete(spreadsheet)
            await db.flush()
        logger.info("Spreadsheet %s deleted by %s", spreadsheet_id, actor.id)

    # ── Lookup and access checks ──────────────────────────────────────────

    async def get_model(self, db: AsyncSession, spreadsheet_id: uuid.UUID) -> Spreadsheet:
        with store_errors("get_spreadsheet"):
            result = await db.execute(select(Spreadsheet).where(Spreadsheet.id == spreadsheet_id))
            spreadsheet = result.scalar_one_or_none()
        if spreadsheet is None:
            raise NotFoundError(resource="spreadsheet", resource_id=str(spreadsheet_id))
        return spreadsheet

    def ensure_can_manage(self, spreadsheet: Spreadsheet, actor: AuthenticatedUser) -> None:
        if actor.is_admin or spreadsheet.owner_id == actor.id:
            return
        raise PermissionDenied(
            message="Only the owner or an administrator can modify this spreadsheet",
            context={"spreadsheet_id": str(spreadsheet.id), "user_id": actor.id},
        )

    async def ensure_can_view(
        self,
        db: AsyncSession,
        spreadsheet: Spreadsheet,
        actor: AuthenticatedUser,
    ) -> None:
        if actor.is_admin or spreadsheet.owner_id == actor.id:
            return
        with store_errors("check_permission"):
            result = await db.execute(
                select(Permission.id).where(
                    Permission.spreadsheet_id == spreadsheet.id,
                    Permission.user_id == actor.id,
                )
            )
            granted = result.first() is not None
        if not granted:
            raise PermissionDenied(
                message="You do not have access to this spreadsheet",
                context={"spreadsheet_id": str(spreadsheet.id), "user_id": actor.id},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
spreadsheet_service = SpreadsheetService()
