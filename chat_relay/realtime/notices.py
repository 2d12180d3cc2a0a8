"""Cross-process presence refresh over Redis pub/sub.

HTTP workers and management commands hold no Socket.IO connections, so counts
broadcast from there reach nobody. With ``REDIS_URL`` set they publish a
refresh notice instead; every Socket.IO process subscribes and rebroadcasts
its own counts to its own connections.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import redis
import redis.asyncio as aioredis
from django.conf import settings

if TYPE_CHECKING:  # import for type checking only
    from .presence import PresenceBroadcaster

logger = logging.getLogger(__name__)

PRESENCE_CHANNEL = "chat_relay:presence"
REFRESH_NOTICE = "refresh"


class PresenceNotices:
    def __init__(self, url: str, channel: str = PRESENCE_CHANNEL) -> None:
        self.url = url
        self.channel = channel

    @classmethod
    def from_settings(cls) -> PresenceNotices | None:
        url = getattr(settings, "REDIS_URL", "")
        if not url:
            return None
        return cls(url)

    def publish(self) -> int:
        """Ask every subscribed Socket.IO process to rebroadcast.

        Returns the number of subscribers that received the notice.
        """

        client = redis.Redis.from_url(
            self.url,
            socket_timeout=0.5,
            socket_connect_timeout=0.5,
        )
        try:
            return client.publish(self.channel, REFRESH_NOTICE)
        finally:
            client.close()

    async def consume(self, broadcaster: PresenceBroadcaster) -> None:
        client = aioredis.from_url(self.url, decode_responses=True)
        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(self.channel)
            logger.info("Listening for presence notices on %s", self.channel)
            async for message in pubsub.listen():
                if message.get("type") == "message":
                    broadcaster.trigger()
        finally:
            await pubsub.aclose()
            await client.aclose()

    async def listen(
        self,
        broadcaster: PresenceBroadcaster,
        *,
        retry_delay: float = 1.0,
    ) -> None:
        """Consume notices for the life of the process, resubscribing on errors."""

        while True:
            try:
                await self.consume(broadcaster)
            except (redis.RedisError, OSError):
                logger.exception("Presence notice subscription lost; retrying")
            await broadcaster.server.sleep(retry_delay)
