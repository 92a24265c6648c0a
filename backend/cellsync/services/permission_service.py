"""
CellSync Backend — Permission Service
=======================================

What:  Grant, update, revoke and list per-spreadsheet permissions.
Who:   Called by the permissions router.

Only the spreadsheet owner or an administrator may change permissions;
anyone who can view the spreadsheet may list them. A user holds at most one
permission per spreadsheet.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cellsync.database import store_errors
from cellsync.exceptions import NotFoundError, ValidationError
from cellsync.models.spreadsheet import Permission
from cellsync.schemas.auth import AuthenticatedUser
from cellsync.schemas.spreadsheet import PermissionResponse, PermissionRole
from cellsync.services.spreadsheet_service import SpreadsheetService, spreadsheet_service

logger = logging.getLogger(__name__)


class PermissionService:

    def __init__(self, spreadsheets: SpreadsheetService = spreadsheet_service):
        self.spreadsheets = spreadsheets

    async def grant(
        self,
        db: AsyncSession,
        spreadsheet_id: uuid.UUID,
        user_id: str,
        role: PermissionRole,
        actor: AuthenticatedUser,
    ) -> PermissionResponse:
        spreadsheet = await self.spreadsheets.get_model(db, spreadsheet_id)
        self.spreadsheets.ensure_can_manage(spreadsheet, actor)

        with store_errors("find_permission"):
            result = await db.execute(
                select(Permission.id).where(
                    Permission.spreadsheet_id == spreadsheet_id,
                    Permission.user_id == user_id,
                )
            )
            existing = result.first()
        if existing is not None:
            raise ValidationError(
                message=f"User '{user_id}' already has a permission on this spreadsheet",
                field="userId",
            )

        permission = Permission(spreadsheet_id=spreadsheet_id, user_id=user_id, role=role.value)
        with store_errors("grant_permission"):
            db.add(permission)
            await db.flush()
        logger.info(
            "Granted %s on spreadsheet %s to %s (by %s)",
            role.value,
            spreadsheet_id,
            user_id,
            actor.id,
        )
        return PermissionResponse.model_validate(permission)

    async def update(
        self,
        db: AsyncSession,
        permission_id: uuid.UUID,
        role: PermissionRole,
        actor: AuthenticatedUser,
    ) -> PermissionResponse:
        permission = await self._get_model(db, permission_id)
        spreadsheet = await self.spreadsheets.get_model(db, permission.spreadsheet_id)
        self.spreadsheets.ensure_can_manage(spreadsheet, actor)

        permission.role = role.value
        with store_errors("update_permission"):
            await db.flush()
        logger.info("Permission %s changed to %s (by %s)", permission_id, role.value, actor.id)
        return PermissionResponse.model_validate(permission)

    async def revoke(
        self,
        db: AsyncSession,
        permission_id: uuid.UUID,
        actor: AuthenticatedUser,
    ) -> None:
        permission = await self._get_model(db, permission_id)
        spreadsheet = await self.spreadsheets.get_model(db, permission.spreadsheet_id)
        self.spreadsheets.ensure_can_manage(spreadsheet, actor)

        with store_errors("revoke_permission"):
            await db.delete(permission)
            await db.flush()
        logger.info("Permission %s revoked (by %s)", permission_id, actor.id)

    async def list_for_spreadsheet(
        self,
        db: AsyncSession,
        spreadsheet_id: uuid.UUID,
        actor: AuthenticatedUser,
    ) -> List[PermissionResponse]:
        spreadsheet = await self.spreadsheets.get_model(db, spreadsheet_id)
        await self.spreadsheets.ensure_can_view(db, spreadsheet, actor)
        with store_errors("list_permissions"):
            result = await db.execute(
                select(Permission)
                .where(Permission.spreadsheet_id == spreadsheet_id)
                .order_by(Permission.created_at.asc())
            )
            permissions = result.scalars().all()
        return [PermissionResponse.model_validate(p) for p in permissions]

    async def _get_model(self, db: AsyncSession, permission_id: uuid.UUID) -> Permission:
        with store_errors("get_permission"):
            result = await db.execute(select(Permission).where(Permission.id == permission_id))
            permission = result.scalar_one_or_none()
        if permission is None:
            raise NotFoundError(resource="permission", resource_id=str(permission_id))
        return permission


# ── Singleton Instance ────────────────────────────────────────────────────
permission_service = PermissionService()
