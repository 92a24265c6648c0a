"""
CellSync Backend — Realtime Edit Route Handlers
=================================================

What:  Edit submission, edit history, and the live-update WebSocket channel.
Who:   Called by the spreadsheet editor in the browser.

Endpoints:
    POST /api/realtime/edits                    → append one edit
    GET  /api/realtime/history/{spreadsheet_id} → edits, newest first
    WS   /api/realtime/ws/{spreadsheet_id}      → one message per new edit

Live channel protocol:
    Server → client: one JSON EditRecord per appended edit, in append order.
    Client → server: any text frame is ignored (clients may send pings).
    Edits appended before the connection opened are never replayed; call
    the history endpoint to catch up.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from cellsync.config import settings
from cellsync.database import get_db_session
from cellsync.dependencies import get_current_user, get_websocket_user
from cellsync.schemas.auth import AuthenticatedUser
from cellsync.schemas.common import ErrorResponse
from cellsync.schemas.edit import EditCreate, EditRecordResponse
from cellsync.services.change_notifier import change_notifier
from cellsync.services.edit_log_service import edit_log_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/realtime", tags=["Realtime"])


@router.post(
    "/edits",
    response_model=EditRecordResponse,
    responses={
        400: {"description": "Missing or malformed field", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Store failure; nothing was stored", "model": ErrorResponse},
    },
    summary="Append a cell edit",
)
async def append_edit(
    body: EditCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> EditRecordResponse:
    """
    Persist one cell edit and push it to live subscribers of the spreadsheet.

    ``userId`` in the body is stored as supplied.
    """
    return await edit_log_service.append(
        db,
        spreadsheet_id=body.spreadsheet_id,
        user_id=body.user_id,
        cell=body.cell,
        new_value=body.new_value,
    )


@router.get(
    "/history/{spreadsheet_id}",
    response_model=list[EditRecordResponse],
    responses={
        404: {"description": "`before` does not name an edit of this spreadsheet", "model": ErrorResponse},
        500: {"description": "Store failure", "model": ErrorResponse},
    },
    summary="List edits of a spreadsheet, newest first",
)
async def get_history(
    spreadsheet_id: str,
    limit: int | None = Query(
        default=None,
        ge=1,
        description="Maximum number of edits to return. Omit for the configured default page size.",
    ),
    before: int | None = Query(
        default=None,
        ge=1,
        description="Id of the last edit already received; only older edits are returned.",
    ),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> list[EditRecordResponse]:
    return await edit_log_service.history(
        db,
        spreadsheet_id=spreadsheet_id,
        limit=limit,
        before=before,
    )


@router.websocket("/ws/{spreadsheet_id}")
async def edits_channel(
    websocket: WebSocket,
    spreadsheet_id: str,
    user: AuthenticatedUser = Depends(get_websocket_user),
) -> None:
    """
    Stream edits of one spreadsheet to a connected client.

    The subscription is registered before the handshake completes, so any
    edit appended after the client sees the connection open is delivered.
    Each connection buffers at most `realtime_queue_size` undelivered edits;
    beyond that, edits are dropped for this connection only.
    """
    queue: asyncio.Queue = asyncio.Queue(maxsize=settings.realtime_queue_size)
    handle = change_notifier.subscribe(spreadsheet_id, queue.put_nowait)
    forwarder = None
    try:
        await websocket.accept()
        logger.info(
            "Live channel opened: spreadsheet=%s user=%s remote=%s",
            spreadsheet_id,
            user.id,
            websocket.client,
        )
        forwarder = asyncio.create_task(_forward_edits(websocket, queue))
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Live channel closed: spreadsheet=%s user=%s", spreadsheet_id, user.id)
    finally:
        change_notifier.unsubscribe(handle)
        if forwarder is not None:
            forwarder.cancel()


async def _forward_edits(websocket: WebSocket, queue: asyncio.Queue) -> None:
    try:
        while True:
            record: EditRecordResponse = await queue.get()
            await websocket.send_json(record.to_message())
    except (WebSocketDisconnect, RuntimeError) as e:
        # Socket closed underneath us; the receive loop unsubscribes
        logger.debug("Live channel send stopped: %s", repr(e))
