"""Database models."""
from .status_page import StatusPage, MonitorGroup, monitor_group
from .monitor import Monitor
from .heartbeat import Heartbeat, HeartbeatStatus
from .stat import StatMinutely, StatHourly, StatDaily, Resolution, ResolutionSource, RESOLUTIONS

__all__ = [
    "StatusPage",
    "MonitorGroup",
    "monitor_group",
    "Monitor",
    "Heartbeat",
    "HeartbeatStatus",
    "StatMinutely",
    "StatHourly",
    "StatDaily",
    "Resolution",
    "ResolutionSource",
    "RESOLUTIONS",
]
