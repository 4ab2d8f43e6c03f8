"""Rollup models - per-period up/down counters at three resolutions."""
import enum
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import Column, Integer, Float, String, UniqueConstraint
from sqlalchemy.orm import declared_attr

from ..database import Base


class StatMixin:
    """Columns shared by every resolution table.

    `timestamp` is the period start in epoch seconds, aligned to the
    table's period length. One row per (monitor_id, timestamp).
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, nullable=False)
    timestamp = Column(Integer, nullable=False)
    up = Column(Integer, nullable=False, default=0)
    down = Column(Integer, nullable=False, default=0)
    ping = Column(Float, nullable=True)  # average ms
    ping_min = Column(Float, nullable=True)
    ping_max = Column(Float, nullable=True)
    extras = Column(String, nullable=True)  # JSON: {"maintenance": n, "pending": n}

    @declared_attr
    def __table_args__(cls):
        return (
            UniqueConstraint("monitor_id", "timestamp", name=f"uq_{cls.__tablename__}_monitor_ts"),
        )


class StatMinutely(StatMixin, Base):
    __tablename__ = "stat_minutely"


class StatHourly(StatMixin, Base):
    __tablename__ = "stat_hourly"


class StatDaily(StatMixin, Base):
    __tablename__ = "stat_daily"


class Resolution(str, enum.Enum):
    MINUTELY = "minutely"
    HOURLY = "hourly"
    DAILY = "daily"


@dataclass(frozen=True)
class ResolutionSource:
    """Where a resolution lives and which look-back windows it serves."""
    model: type
    period_seconds: int
    max_days: Optional[int]  # None = serves any longer window


# Finest first. A window is served by the first entry whose max_days covers it.
RESOLUTIONS: Dict[Resolution, ResolutionSource] = {
    Resolution.MINUTELY: ResolutionSource(StatMinutely, 60, 1),
    Resolution.HOURLY: ResolutionSource(StatHourly, 3600, 30),
    Resolution.DAILY: ResolutionSource(StatDaily, 86400, None),
}
