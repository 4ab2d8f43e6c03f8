"""Pydantic schemas for API request/response models."""
from .status_page import (
    PublicHeartbeat,
    StatusPageConfig,
    PublicMonitor,
    PublicGroup,
    StatusPageResponse,
    HeartbeatListResponse,
    BadgeResponse,
    ManifestIcon,
    ManifestResponse,
)

__all__ = [
    "PublicHeartbeat",
    "StatusPageConfig",
    "PublicMonitor",
    "PublicGroup",
    "StatusPageResponse",
    "HeartbeatListResponse",
    "BadgeResponse",
    "ManifestIcon",
    "ManifestResponse",
]
