"""
Change feed endpoints.

Two ways to follow changes in a branch scope:
- GET /api/branches/{branch_id}/changes?after=<cursor>: poll the outbox
  in sequence order. Works without Redis.
- WS /ws/branches/{branch_id}/changes?token=<jwt>: live relay of the
  Redis channels the outbox processor publishes to.
"""

import asyncio
import json

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from rest_api.routers._common import branch_scope, current_staff
from rest_api.routers._common.outputs import change_output
from rest_api.services.domain import IdentityResolver
from rest_api.services.events.change_feed import list_changes
from rest_api.services.permissions import BranchScope, StaffContext, select_branch_scope
from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.infrastructure.db import get_db, get_db_context
from shared.infrastructure.events import (
    channel_branch_changes,
    channel_franchise_changes,
    get_redis_pool,
)
from shared.security.auth import verify_jwt
from shared.utils.exceptions import AppException
from shared.utils.schemas import ChangeFeedOutput

logger = get_logger(__name__)

router = APIRouter(tags=["changes"])
ws_router = APIRouter(tags=["changes"])

# Close codes in the 4000 range mirror the HTTP status
WS_CLOSE_UNAUTHORIZED = 4001
WS_CLOSE_FORBIDDEN = 4003
MAX_CLIENT_MESSAGE_SIZE = 1024


@router.get("/changes", response_model=ChangeFeedOutput)
def poll_changes(
    after: int = Query(default=0, ge=0, description="Last sequence already seen"),
    limit: int = Query(default=100, ge=1, le=Limits.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> ChangeFeedOutput:
    """
    Change events after the cursor, oldest first.

    Pass the returned cursor as `after` on the next call.
    """
    events, cursor = list_changes(db, scope, after=after, limit=limit)
    return ChangeFeedOutput(events=[change_output(e) for e in events], cursor=cursor)


@ws_router.websocket("/ws/branches/{branch_id}/changes")
async def changes_websocket(
    websocket: WebSocket,
    branch_id: str,
    token: str = Query(..., description="JWT access token"),
):
    """
    Relay change events for a branch scope.

    Close codes:
    - 4001: invalid token or inactive staff
    - 4003: branch outside the caller's scope

    The client may send "ping" and receives "pong".
    """
    await websocket.accept()
    try:
        claims = verify_jwt(token)
        with get_db_context() as db:
            ctx = IdentityResolver(db).resolve(claims["sub"])
            try:
                scope = select_branch_scope(db, ctx, branch_id)
            except AppException as e:
                await websocket.close(code=WS_CLOSE_FORBIDDEN, reason=str(e.detail))
                return
    except AppException as e:
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED, reason=str(e.detail))
        return

    channels = [channel_branch_changes(b) for b in sorted(scope.branch_ids)]
    channels.append(channel_franchise_changes(scope.franchise_id))

    redis_client = await get_redis_pool()
    pubsub = redis_client.pubsub()
    await pubsub.subscribe(*channels)
    logger.info("Change feed client connected", staff_id=ctx.staff_id, channels=len(channels))

    relay = asyncio.create_task(_relay(pubsub, websocket))
    receive = asyncio.create_task(_receive(websocket))
    try:
        done, pending = await asyncio.wait({relay, receive}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("Change feed connection failed", staff_id=ctx.staff_id, error=str(exc))
    finally:
        await pubsub.unsubscribe(*channels)
        await pubsub.aclose()
        logger.info("Change feed client disconnected", staff_id=ctx.staff_id)


async def _relay(pubsub, websocket: WebSocket) -> None:
    async for msg in pubsub.listen():
        if msg is None or msg.get("type") != "message":
            continue
        data = msg["data"]
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Dropping malformed change event", error=str(e))
            continue
        await websocket.send_text(data)


async def _receive(websocket: WebSocket) -> None:
    while True:
        text = await websocket.receive_text()
        if len(text) > MAX_CLIENT_MESSAGE_SIZE:
            await websocket.close(code=1009, reason="Message too large")
            return
        if text == "ping":
            await websocket.send_text("pong")
