"""
CellSync Backend — Spreadsheet and Permission Route Handlers
==============================================================

What:  CRUD for spreadsheets and the permissions attached to them.

Endpoints:
    POST   /api/spreadsheets                          → create (caller is owner)
    GET    /api/spreadsheets                          → caller's spreadsheets
    GET    /api/spreadsheets/{id}                     → one spreadsheet
    PATCH  /api/spreadsheets/{id}                     → rename
    DELETE /api/spreadsheets/{id}                     → delete
    POST   /api/spreadsheets/{id}/permissions         → grant
    GET    /api/spreadsheets/{id}/permissions         → list
    PATCH  /api/permissions/{permission_id}           → change role
    DELETE /api/permissions/{permission_id}           → revoke
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cellsync.database import get_db_session
from cellsync.dependencies import get_current_user
from cellsync.schemas.auth import AuthenticatedUser
from cellsync.schemas.common import ErrorResponse
from cellsync.schemas.spreadsheet import (
    PermissionGrant,
    PermissionResponse,
    PermissionUpdate,
    SpreadsheetCreate,
    SpreadsheetRename,
    SpreadsheetResponse,
)
from cellsync.services.permission_service import permission_service
from cellsync.services.spreadsheet_service import spreadsheet_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Spreadsheets"])

_ERRORS = {
    401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
    403: {"description": "Caller may not perform this action", "model": ErrorResponse},
    404: {"description": "Spreadsheet or permission not found", "model": ErrorResponse},
}


# ── Spreadsheets ──────────────────────────────────────────────────────────

@router.post(
    "/spreadsheets",
    status_code=status.HTTP_201_CREATED,
    response_model=SpreadsheetResponse,
    responses=_ERRORS,
    summary="Create a spreadsheet owned by the caller",
)
async def create_spreadsheet(
    body: SpreadsheetCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SpreadsheetResponse:
    return await spreadsheet_service.create(db, title=body.title, owner=user)


@router.get(
    "/spreadsheets",
    response_model=list[SpreadsheetResponse],
    responses=_ERRORS,
    summary="List spreadsheets the caller owns or was granted",
)
async def list_spreadsheets(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> list[SpreadsheetResponse]:
    return await spreadsheet_service.list_for_user(db, user.id)


@router.get(
    "/spreadsheets/{spreadsheet_id}",
    response_model=SpreadsheetResponse,
    responses=_ERRORS,
    summary="Get one spreadsheet",
)
async def get_spreadsheet(
    spreadsheet_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SpreadsheetResponse:
    return await spreadsheet_service.get(db, spreadsheet_id, actor=user)


@router.patch(
    "/spreadsheets/{spreadsheet_id}",
    response_model=SpreadsheetResponse,
    responses=_ERRORS,
    summary="Rename a spreadsheet",
)
async def rename_spreadsheet(
    spreadsheet_id: UUID,
    body: SpreadsheetRename,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SpreadsheetResponse:
    return await spreadsheet_service.rename(db, spreadsheet_id, title=body.title, actor=user)


@router.delete(
    "/spreadsheets/{spreadsheet_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    summary="Delete a spreadsheet and its permissions",
)
async def delete_spreadsheet(
    spreadsheet_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await spreadsheet_service.delete(db, spreadsheet_id, actor=user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Permissions ───────────────────────────────────────────────────────────

@router.post(
    "/spreadsheets/{spreadsheet_id}/permissions",
    status_code=status.HTTP_201_CREATED,
    response_model=PermissionResponse,
    responses={**_ERRORS, 400: {"description": "User already has a permission", "model": ErrorResponse}},
    summary="Grant a user a role on a spreadsheet",
)
async def grant_permission(
    spreadsheet_id: UUID,
    body: PermissionGrant,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PermissionResponse:
    return await permission_service.grant(
        db,
        spreadsheet_id,
        user_id=body.user_id,
        role=body.role,
        actor=user,
    )


@router.get(
    "/spreadsheets/{spreadsheet_id}/permissions",
    response_model=list[PermissionResponse],
    responses=_ERRORS,
    summary="List permissions of a spreadsheet",
)
async def list_permissions(
    spreadsheet_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> list[PermissionResponse]:
    return await permission_service.list_for_spreadsheet(db, spreadsheet_id, actor=user)


@router.patch(
    "/permissions/{permission_id}",
    response_model=PermissionResponse,
    responses=_ERRORS,
    summary="Change the role of a permission",
)
async def update_permission(
    permission_id: UUID,
    body: PermissionUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PermissionResponse:
    return await permission_service.update(db, permission_id, role=body.role, actor=user)


@router.delete(
    "/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    summary="Revoke a permission",
)
async def revoke_permission(
    permission_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await permission_service.revoke(db, permission_id, actor=user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
