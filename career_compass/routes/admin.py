"""
Admin Routes
Admin dashboard, user and login activity lists, and the live update feed
"""

import asyncio

import structlog
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from career_compass.config import settings
from career_compass.services.admin_view import AdminDataView
from career_compass.utils.dependencies import (
    AdminSession, StorageFactory, get_backend, get_storage_factory, open_session_context
)
from career_compass.utils.guards import admin_only
from career_compass.utils.supabase_client import SupabaseBackend

logger = structlog.get_logger(__name__)

router = APIRouter()

LOAD_FAILED_MESSAGE = "Failed to load user data. Please try again."


async def load_view(ctx) -> AdminDataView:
    view = AdminDataView(ctx.profiles)
    errors = await view.refresh_all()
    if errors:
        logger.error("Error fetching admin data", errors=[e.message for e in errors])
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=LOAD_FAILED_MESSAGE)
    return view


@router.get("")
async def admin_dashboard(ctx: AdminSession, search: str = ""):
    """Admin dashboard: statistics, users (filtered by ``search``) and login activity"""
    view = await load_view(ctx)
    return {
        "page": "admin",
        "session": ctx.store.state.summary(),
        **view.snapshot(search)
    }


@router.get("/users")
async def list_users(ctx: AdminSession, search: str = ""):
    """All user profiles, optionally filtered by name or email"""
    view = AdminDataView(ctx.profiles)
    error = await view.refresh_profiles()
    if error:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=LOAD_FAILED_MESSAGE)

    users = view.filter_users(search)
    return {
        "users": [user.model_dump(mode="json") for user in users],
        "total": len(users)
    }


@router.get("/login-activity")
async def list_login_activity(ctx: AdminSession):
    """Login activity table"""
    view = AdminDataView(ctx.profiles)
    error = await view.refresh_login_activity()
    if error:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=LOAD_FAILED_MESSAGE)

    return {
        "login_activity": view.activity_rows(),
        "total": len(view.login_activity)
    }


@router.get("/stats")
async def admin_stats(ctx: AdminSession):
    """User and login statistics"""
    view = await load_view(ctx)
    return view.stats()


@router.websocket("/live")
async def admin_live(
    websocket: WebSocket,
    backend: SupabaseBackend = Depends(get_backend),
    storage_factory: StorageFactory = Depends(get_storage_factory)
):
    """
    Live admin feed

    Sends a snapshot on connect and after every realtime change; text
    messages from the client set the user search query. Binary frames are
    ignored.
    """
    session_id = websocket.cookies.get(settings.session_cookie_name)
    if not session_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with open_session_context(session_id, backend, storage_factory) as ctx:
        if not admin_only(ctx.store.state).allowed:
            logger.warning("Rejected live admin feed", user_id=ctx.store.state.user.id if ctx.store.state.user else None)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        view = AdminDataView(ctx.profiles)
        search = ""
        # The realtime worker and the receive loop both write to the socket
        send_lock = asyncio.Lock()

        async def send(payload: dict) -> None:
            async with send_lock:
                await websocket.send_json(payload)

        async def push(table: str) -> None:
            await send({"event": "changed", "table": table, **view.snapshot(search)})

        errors = await view.refresh_all()
        if errors:
            await send({"error": True, "message": LOAD_FAILED_MESSAGE})
        await send({"event": "snapshot", **view.snapshot(search)})

        async with view.live(ctx.client, on_update=push):
            try:
                while True:
                    message = await websocket.receive()
                    if message["type"] == "websocket.disconnect":
                        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
                    if message.get("text") is None:
                        continue
                    search = message["text"]
                    await send({"event": "search", **view.snapshot(search)})
            except WebSocketDisconnect:
                logger.info("Live admin feed disconnected", user_id=ctx.store.state.user.id)
