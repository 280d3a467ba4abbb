"""
Folder Mapping Model - one monitored storage folder bound to one chat.

Persisted as a record inside the auto-fetch JSON document, keyed by
folder_id. On disk the record uses camelCase keys:

    {
      "reports/team-a": {
        "chatId": "1234567890-1234567890@g.us",
        "nickname": "team_a",
        "lastFileId": "reports/team-a/week-12.xlsx@9b2cf535f27731c974343645a3985328",
        "lastFileName": "week-12.xlsx",
        "lastCheck": "2025-12-01T10:30:00+00:00",
        "addedAt": "2025-11-20T08:00:00+00:00",
        "isActive": true,
        "retryCount": 0,
        "sendFirstFile": false
      }
    }
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config.constants import DeliveryConfig


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_nickname(folder_id: str) -> str:
    """Nickname used when the operator does not supply one."""
    return f"auto_{folder_id[:DeliveryConfig.NICKNAME_PREFIX_CHARS]}"


class FolderMapping(BaseModel):
    """Association between a remote folder and a destination chat, plus monitoring state."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    folder_id: str = Field(..., min_length=1, description="Remote folder identifier (unique key)")
    chat_id: str = Field(..., min_length=1, description="Destination chat address")
    nickname: str = Field(..., description="Human-readable label")
    last_file_id: Optional[str] = Field(None, description="Last delivered file, None before first delivery")
    last_file_name: Optional[str] = Field(None, description="Display name of the last delivered file")
    last_check: datetime = Field(default_factory=utcnow, description="Most recent poll attempt")
    added_at: datetime = Field(default_factory=utcnow, description="When the mapping was created")
    is_active: bool = Field(default=True, description="False while polling is suspended")
    retry_count: int = Field(default=0, ge=0, description="Consecutive failed attempts")
    send_first_file: bool = Field(
        default=True, description="Deliver the current latest file even with nothing on record"
    )

    @classmethod
    def create(cls, folder_id: str, chat_id: str, nickname: Optional[str] = None) -> "FolderMapping":
        """Build a fresh mapping: nothing delivered yet, first file pending."""
        now = utcnow()
        return cls(
            folder_id=folder_id,
            chat_id=chat_id,
            nickname=nickname or default_nickname(folder_id),
            last_file_id=None,
            last_file_name=None,
            last_check=now,
            added_at=now,
            is_active=True,
            retry_count=0,
            send_first_file=True,
        )

    @classmethod
    def from_record(cls, folder_id: str, record: dict[str, Any]) -> "FolderMapping":
        """Rebuild a mapping from its persisted record."""
        data = dict(record)
        data.setdefault("nickname", default_nickname(folder_id))
        return cls.model_validate({**data, "folderId": folder_id})

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record (camelCase, ISO-8601 timestamps, no key)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"folder_id"})

    def is_new_file(self, file_id: str) -> bool:
        """Decide whether a listed file warrants delivery."""
        first_pending = self.send_first_file and self.last_file_id is None
        return first_pending or file_id != self.last_file_id

    def mark_checked(self) -> None:
        """Record a successful poll that delivered nothing."""
        self.last_check = utcnow()
        self.retry_count = 0

    def mark_delivered(self, file_id: str, file_name: str) -> None:
        self.last_file_id = file_id
        self.last_file_name = file_name
        self.send_first_file = False
        self.mark_checked()

    def record_failure(self, max_retries: int) -> bool:
        """
        Count one failed attempt.

        Returns:
            True if the retry budget is now exhausted and the mapping was paused
        """
        self.last_check = utcnow()
        self.retry_count += 1
        if self.retry_count >= max_retries:
            self.is_active = False
            return True
        return False

    def activate(self) -> None:
        self.is_active = True
        self.retry_count = 0

    def deactivate(self) -> None:
        self.is_active = False
