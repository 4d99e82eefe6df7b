"""
Relays Redis pub/sub admin events to one WebSocket connection.
Each connection holds its own subscription, so any API worker can serve any admin.
"""
import asyncio
import logging

import redis.asyncio as aioredis
from fastapi import WebSocket

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 30.0
POLL_TIMEOUT_SECONDS = 1.0


class AdminEventRelay:
    def __init__(self, redis_url: str, channel: str) -> None:
        self.redis_url = redis_url
        self.channel = channel

    async def run(self, websocket: WebSocket) -> None:
        """Forward messages until the socket fails; raises WebSocketDisconnect on client close."""
        client = aioredis.from_url(self.redis_url, decode_responses=True)
        pubsub = client.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            await websocket.send_json({"event": "connected"})
            loop = asyncio.get_running_loop()
            last_beat = loop.time()
            while True:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=POLL_TIMEOUT_SECONDS
                )
                if message and message.get("type") == "message":
                    await websocket.send_text(message["data"])
                if loop.time() - last_beat >= HEARTBEAT_SECONDS:
                    await websocket.send_json({"event": "heartbeat"})
                    last_beat = loop.time()
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
            await client.aclose()
