"""Configuration management module."""

from .settings import Settings, settings
from .constants import (
    DeliveryConfig,
    MimeTypes,
    Timeouts,
)

__all__ = [
    "Settings",
    "settings",
    "Timeouts",
    "DeliveryConfig",
    "MimeTypes",
]
