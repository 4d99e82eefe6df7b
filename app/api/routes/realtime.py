"""
Admin real-time feed: WS /api/admin/ws?token=<jwt> streams new-order events.
Browsers cannot set Authorization on a WebSocket, so the token comes in the query string.
"""
import logging

import redis
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.core.config import settings
from app.services.auth.jwt import verify_token
from app.services.realtime.relay import AdminEventRelay
from app.utils.metrics import admin_ws_connections

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/api/admin/ws")
async def admin_events(websocket: WebSocket, token: str | None = Query(None)):
    payload = verify_token(token) if token else None
    if not payload or not payload.get("sub"):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    admin_ws_connections.inc()
    logger.info("admin_ws_connected")
    relay = AdminEventRelay(settings.redis_url, settings.admin_events_channel)
    try:
        await relay.run(websocket)
    except WebSocketDisconnect:
        pass
    except redis.RedisError as e:
        logger.warning("admin_ws_redis_error", extra={"error": str(e)})
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        admin_ws_connections.dec()
        logger.info("admin_ws_disconnected")
