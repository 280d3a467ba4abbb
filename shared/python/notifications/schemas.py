"""Notification event schema."""
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

PriorityLevel = Literal["urgent", "high", "default", "low", "min"]


class EventType:
    """Event names published by the folder monitor."""
    FILE_DELIVERED = "autofetch.delivered"
    FOLDER_PAUSED = "autofetch.paused"


class NotificationEvent(BaseModel):
    """One published event."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "service": "courier",
                "type": EventType.FOLDER_PAUSED,
                "data": {"folder_id": "reports/team-a", "nickname": "team_a", "retry_count": 3},
                "priority": "high",
                "tags": ["autofetch", "action-required"],
                "timestamp": "2025-11-06T10:30:00+00:00",
            }
        }
    )

    service: str = Field(..., description="Emitting service")
    type: str = Field(..., description="Dotted event name")
    data: dict[str, Any] = Field(default_factory=dict)
    priority: PriorityLevel = "default"
    tags: list[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
