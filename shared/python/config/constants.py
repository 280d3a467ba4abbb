"""
Shared configuration constants for Drive Courier.

This module centralizes magic numbers and default values that are used
across modules. Values can be overridden via environment variables.

Usage:
    from config.constants import Timeouts, DeliveryConfig

    async with httpx.AsyncClient(timeout=Timeouts.HTTP_DEFAULT) as client:
        ...
"""

import os


class Timeouts:
    """HTTP and operation timeout constants (in seconds)."""

    # HTTP client timeouts
    HTTP_DEFAULT = float(os.getenv("HTTP_TIMEOUT_DEFAULT", "30.0"))
    """Default timeout for HTTP requests."""

    HTTP_SHORT = float(os.getenv("HTTP_TIMEOUT_SHORT", "10.0"))
    """Short timeout for quick API calls (text replies, webhook verification)."""

    HTTP_LONG = float(os.getenv("HTTP_TIMEOUT_LONG", "60.0"))
    """Long timeout for slow operations (media uploads)."""

    SHUTDOWN_GRACE = float(os.getenv("SHUTDOWN_GRACE_TIMEOUT", "30.0"))
    """Time allowed for in-flight poll cycles to finish during shutdown."""


class DeliveryConfig:
    """Delivery and caption formatting constants."""

    FOLDER_ID_CAPTION_CHARS = 12
    """Folder id characters shown in a delivery caption."""

    FOLDER_ID_SCRATCH_CHARS = 8
    """Folder id characters embedded in a scratch file name."""

    NICKNAME_PREFIX_CHARS = 8
    """Folder id characters used for a default nickname."""

    MAX_SCRATCH_NAME_CHARS = 120
    """Longest display name fragment kept in a scratch file name."""

    MAX_FILE_SIZE_MB = int(os.getenv("MAX_DELIVERY_SIZE_MB", "100"))
    """Largest document the chat transport accepts."""


class MimeTypes:
    """MIME types for deliverable spreadsheet formats."""

    BY_EXTENSION = {
        ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        ".xlsm": "application/vnd.ms-excel.sheet.macroEnabled.12",
        ".xls": "application/vnd.ms-excel",
        ".ods": "application/vnd.oasis.opendocument.spreadsheet",
        ".csv": "text/csv",
    }

    DEFAULT = "application/octet-stream"
