"""
Redis notification publisher for folder monitor events.

Events are published as JSON on a single pub/sub channel; whatever routes
them onward (ntfy, email) lives outside the bot. Publishing is best effort:
a Redis outage is logged and never interrupts a poll cycle.
"""
import logging
from typing import Any, Optional

from redis.asyncio import Redis

from .schemas import EventType, NotificationEvent, PriorityLevel

logger = logging.getLogger(__name__)

CHANNEL = "notifications:events"


class NotificationClient:
    """
    Publishes NotificationEvents for one service.

    Example:
        notifier = NotificationClient("courier", "redis://redis:6379")
        await notifier.folder_paused("reports/team-a", "team_a", retry_count=3)
    """

    def __init__(self, service_name: str, redis_url: str, channel: str = CHANNEL) -> None:
        self.service_name = service_name
        self.redis_url = redis_url
        self.channel = channel
        self.redis: Optional[Redis] = None

    async def _get_redis(self) -> Redis:
        if self.redis is None:
            self.redis = Redis.from_url(self.redis_url, decode_responses=True)
        return self.redis

    async def emit(
        self,
        event_type: str,
        data: dict[str, Any],
        priority: PriorityLevel = "default",
        tags: Optional[list[str]] = None,
    ) -> bool:
        """
        Publish one event.

        Args:
            event_type: Dotted event name (see EventType)
            data: Event payload
            priority: urgent/high/default/low/min
            tags: Routing tags

        Returns:
            True if Redis accepted the message. Failures are logged, not raised.
        """
        try:
            event = NotificationEvent(
                service=self.service_name,
                type=event_type,
                data=data,
                priority=priority,
                tags=tags or [],
            )
            redis = await self._get_redis()
            await redis.publish(self.channel, event.model_dump_json())
        except Exception as e:
            logger.warning(f"Failed to emit {event_type} notification: {e}")
            return False

        logger.debug(f"Emitted {event_type} event", extra={"priority": priority})
        return True

    async def file_delivered(self, folder_id: str, chat_id: str, file_name: str) -> bool:
        return await self.emit(
            EventType.FILE_DELIVERED,
            {"folder_id": folder_id, "chat_id": chat_id, "file_name": file_name},
            priority="low",
            tags=["autofetch"],
        )

    async def folder_paused(self, folder_id: str, nickname: str, retry_count: int) -> bool:
        """A folder exhausted its retry budget and needs an operator to resume it."""
        return await self.emit(
            EventType.FOLDER_PAUSED,
            {"folder_id": folder_id, "nickname": nickname, "retry_count": retry_count},
            priority="high",
            tags=["autofetch", "action-required"],
        )

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
