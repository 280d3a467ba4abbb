"""Remote file descriptor returned by storage backends."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RemoteFile(BaseModel):
    """A file found in a monitored folder."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Backend identifier, stable for one file revision")
    name: str = Field(..., description="Display name")
    modified_time: datetime = Field(..., description="Last modification time reported by the backend")
    size: Optional[int] = Field(None, ge=0, description="Size in bytes")
    mime_type: Optional[str] = Field(None, description="MIME type")
