"""Rollup service - keeps the stat tables current from raw heartbeats.

Every tick recomputes, per active monitor and per resolution, the current
and the previous period straight from the heartbeats table and upserts one
row per period. Heartbeats are immutable, so a recomputation over the same
heartbeats always writes the same rows.

Counter mapping: Up -> up, Down -> down, Maintenance -> extras.maintenance,
Pending -> extras.pending (neither up nor down).

A second job prunes each table past its retention horizon.
"""
import calendar
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import async_session
from ..models import Heartbeat, HeartbeatStatus, Monitor, Resolution, RESOLUTIONS
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


@dataclass
class PeriodTally:
    """Counters for one rollup period."""
    up: int = 0
    down: int = 0
    maintenance: int = 0
    pending: int = 0
    pings: List[float] = field(default_factory=list)

    def add(self, status: int, ping: Optional[float]) -> None:
        if status == HeartbeatStatus.UP:
            self.up += 1
        elif status == HeartbeatStatus.DOWN:
            self.down += 1
        elif status == HeartbeatStatus.MAINTENANCE:
            self.maintenance += 1
        elif status == HeartbeatStatus.PENDING:
            self.pending += 1
        if ping is not None:
            self.pings.append(float(ping))

    @property
    def ping_avg(self) -> Optional[float]:
        return sum(self.pings) / len(self.pings) if self.pings else None

    def extras_json(self) -> str:
        return json.dumps({"maintenance": self.maintenance, "pending": self.pending}, sort_keys=True)


def to_epoch(value: datetime) -> int:
    """Epoch seconds for a heartbeat time; naive values are UTC."""
    if value.tzinfo is not None:
        return int(value.timestamp())
    return calendar.timegm(value.utctimetuple())


def from_epoch(ts: int) -> datetime:
    """Naive UTC datetime, matching how heartbeat times are stored."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


def tally_heartbeats(
    heartbeats: Iterable[Tuple[datetime, int, Optional[float]]],
    period_seconds: int,
    since: int,
) -> Dict[int, PeriodTally]:
    """Group (time, status, ping) tuples into aligned periods starting at `since` or later."""
    tallies: Dict[int, PeriodTally] = {}
    for time, status, ping in heartbeats:
        ts = to_epoch(time)
        if ts < since:
            continue
        period_start = (ts // period_seconds) * period_seconds
        tallies.setdefault(period_start, PeriodTally()).add(status, ping)
    return tallies


async def _upsert_stats(
    session: AsyncSession,
    model: type,
    monitor_id: int,
    tallies: Dict[int, PeriodTally],
) -> int:
    """Write one row per tallied period, updating rows that already exist."""
    if not tallies:
        return 0

    result = await session.execute(
        select(model).where(
            model.monitor_id == monitor_id,
            model.timestamp.in_(list(tallies.keys())),
        )
    )
    existing = {row.timestamp: row for row in result.scalars().all()}

    for timestamp, tally in tallies.items():
        row = existing.get(timestamp)
        if row is None:
            row = model(monitor_id=monitor_id, timestamp=timestamp)
            session.add(row)
        row.up = tally.up
        row.down = tally.down
        row.ping = tally.ping_avg
        row.ping_min = min(tally.pings) if tally.pings else None
        row.ping_max = max(tally.pings) if tally.pings else None
        row.extras = tally.extras_json()

    return len(tallies)


async def rollup_monitor(session: AsyncSession, monitor_id: int, now_ts: int) -> Dict[Resolution, int]:
    """Recompute the current and previous period of every resolution for a monitor.

    Returns the number of rows written per resolution. The caller commits.
    """
    windows = {
        resolution: (now_ts // source.period_seconds) * source.period_seconds - source.period_seconds
        for resolution, source in RESOLUTIONS.items()
    }
    earliest = min(windows.values())

    result = await session.execute(
        select(Heartbeat.time, Heartbeat.status, Heartbeat.ping)
        .where(
            Heartbeat.monitor_id == monitor_id,
            Heartbeat.time >= from_epoch(earliest),
        )
        .order_by(Heartbeat.time)
    )
    heartbeats = result.all()

    written = {}
    for resolution, source in RESOLUTIONS.items():
        tallies = tally_heartbeats(heartbeats, source.period_seconds, windows[resolution])
        written[resolution] = await _upsert_stats(session, source.model, monitor_id, tallies)
    return written


async def rollup_all(session: AsyncSession, now: Optional[datetime] = None) -> int:
    """Roll up every active monitor and commit. Returns the number of monitors processed."""
    now_ts = to_epoch(now) if now else int(datetime.now(timezone.utc).timestamp())

    result = await session.execute(select(Monitor.id).where(Monitor.active == 1))
    monitor_ids = result.scalars().all()

    for monitor_id in monitor_ids:
        await rollup_monitor(session, monitor_id, now_ts)

    await retry_on_lock(session.commit)
    return len(monitor_ids)


async def cleanup_old_records(session: AsyncSession, now: Optional[datetime] = None) -> Dict[str, int]:
    """Delete rollup rows and heartbeats past their retention and commit."""
    now = now or datetime.now(timezone.utc)
    now_ts = to_epoch(now)

    horizons = {
        Resolution.MINUTELY: now_ts - settings.minutely_retention_hours * 3600,
        Resolution.HOURLY: now_ts - settings.hourly_retention_days * 86400,
        Resolution.DAILY: now_ts - settings.daily_retention_days * 86400,
    }

    deleted = {}
    for resolution, cutoff in horizons.items():
        model = RESOLUTIONS[resolution].model
        result = await session.execute(delete(model).where(model.timestamp < cutoff))
        deleted[model.__tablename__] = result.rowcount or 0

    heartbeat_cutoff = from_epoch(now_ts) - timedelta(days=settings.heartbeat_retention_days)
    result = await session.execute(delete(Heartbeat).where(Heartbeat.time < heartbeat_cutoff))
    deleted[Heartbeat.__tablename__] = result.rowcount or 0

    await retry_on_lock(session.commit)
    return deleted


class RollupService:
    """Runs the rollup and retention jobs on an asyncio scheduler."""

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def start(self):
        """Start the scheduler."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()

        self.scheduler.add_job(
            self._run_rollup,
            trigger=IntervalTrigger(seconds=settings.rollup_interval_seconds),
            id="rollup_stats",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=settings.rollup_interval_seconds,
        )

        self.scheduler.add_job(
            self._cleanup_old_records,
            trigger=IntervalTrigger(hours=1),
            id="cleanup_old_records",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._running = True
        logger.info(f"Rollup scheduler started (interval={settings.rollup_interval_seconds}s)")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Rollup scheduler stopped")

    async def _run_rollup(self):
        try:
            async with async_session() as session:
                count = await rollup_all(session)
            logger.debug(f"Rolled up {count} monitors")
        except Exception as e:
            logger.error(f"Error rolling up stats: {e}")

    async def _cleanup_old_records(self):
        try:
            async with async_session() as session:
                deleted = await cleanup_old_records(session)
            logger.info(f"Cleaned up old records: {deleted}")
        except Exception as e:
            logger.error(f"Error cleaning up records: {e}")


# Global instance
rollup_service = RollupService()
