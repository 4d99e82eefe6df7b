"""
Publishes admin events to Redis pub/sub; the WebSocket relay forwards them to connected admins.
"""
import json
import logging
from typing import Any

import redis

from app.utils.metrics import realtime_publish_failures_total

logger = logging.getLogger(__name__)

EVENT_NEW_ORDER = "new-order"

# publish runs inside the approving request
SOCKET_TIMEOUT_SECONDS = 2.0


class AdminEventPublisher:
    def __init__(self, client: redis.Redis, channel: str) -> None:
        self._client = client
        self._channel = channel

    @classmethod
    def from_url(cls, redis_url: str, channel: str) -> "AdminEventPublisher":
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
        )
        return cls(client, channel)

    def publish(self, event: str, data: dict[str, Any]) -> bool:
        """Best effort: a Redis failure is logged and counted, never raised."""
        message = json.dumps({"event": event, "data": data}, ensure_ascii=False, default=str)
        try:
            self._client.publish(self._channel, message)
        except redis.RedisError as e:
            realtime_publish_failures_total.inc()
            logger.warning(
                "admin_event_publish_failed",
                extra={"event_type": event, "order_id": data.get("orderId"), "error": str(e)},
            )
            return False
        logger.info("admin_event_published", extra={"event_type": event, "order_id": data.get("orderId")})
        return True
