from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from jose import JWTError

from core.database import WATCHED_TABLES, SessionLocal
from core.realtime import change_feed
from core.security import decode_token
from models.user import User


router = APIRouter()

logger = logging.getLogger(__name__)


def _active_user_id(token: str | None) -> uuid.UUID | None:
    """Resolve a token to an existing, active user's id (same rules as HTTP auth)."""

    try:
        payload = decode_token(token or "")
        user_id = uuid.UUID(str(payload.get("sub")))
    except (JWTError, ValueError):
        return None

    with SessionLocal() as db:
        user = db.get(User, user_id)
        if user is None or not user.is_active:
            return None
    return user_id


@router.websocket("/{channel}")
async def subscribe_channel(websocket: WebSocket, channel: str) -> None:
    """Push ``{"table", "event"}`` after each commit touching ``channel``.

    Clients re-fetch on every message; nothing is replayed on reconnect.
    """

    token = websocket.query_params.get("token") or websocket.cookies.get("access_token")
    user_id = await run_in_threadpool(_active_user_id, token)
    if user_id is None:
        logger.info("Realtime rejected (auth) channel=%s", channel)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if channel not in WATCHED_TABLES:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict] = asyncio.Queue()
    # Commits happen on worker threads; hand messages over to this loop.
    unsubscribe = change_feed.subscribe(channel, lambda msg: loop.call_soon_threadsafe(queue.put_nowait, msg))
    logger.debug("Realtime subscribe channel=%s user_id=%s", channel, user_id)

    async def _pump() -> None:
        while True:
            await websocket.send_json(await queue.get())

    sender = asyncio.create_task(_pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            try:
                await sender
            except Exception:
                logger.warning("Realtime send failed channel=%s user_id=%s", channel, user_id, exc_info=True)
        logger.debug("Realtime unsubscribe channel=%s user_id=%s", channel, user_id)
