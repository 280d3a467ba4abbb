"""Best-effort Redis notifications for monitor events."""
from .client import CHANNEL, NotificationClient
from .schemas import EventType, NotificationEvent, PriorityLevel

__all__ = ["CHANNEL", "EventType", "NotificationClient", "NotificationEvent", "PriorityLevel"]
