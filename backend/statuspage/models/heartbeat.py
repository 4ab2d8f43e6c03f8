"""Heartbeat model - raw probe results."""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base


def isoformat_utc(value: datetime) -> str:
    """ISO-8601 with milliseconds and a Z suffix; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class HeartbeatStatus(enum.IntEnum):
    """Status codes shared by heartbeats and timeline buckets."""
    DOWN = 0
    UP = 1
    PENDING = 2
    MAINTENANCE = 3


class Heartbeat(Base):
    """One probe result for a monitor. Never updated once written."""

    __tablename__ = "heartbeats"
    __table_args__ = (
        Index("ix_heartbeats_monitor_time", "monitor_id", "time"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    time = Column(DateTime, default=datetime.utcnow, nullable=False)  # naive UTC
    status = Column(Integer, nullable=False)  # HeartbeatStatus code
    msg = Column(String, nullable=True)
    ping = Column(Float, nullable=True)  # ms, NULL if no response

    monitor = relationship("Monitor", back_populates="heartbeats")

    def to_public_json(self) -> dict:
        """Shape exposed on public status pages (no internal ids)."""
        return {
            "status": self.status,
            "time": isoformat_utc(self.time) if self.time else None,
            "msg": self.msg or "",
            "ping": self.ping,
        }
