"""Timeline downsampler - folds rollup rows into fixed-width display buckets.

A status page timeline is always `max_beat` bars wide, whatever the look-back
window. For a window of `days`:

- the coarsest rollup table that still resolves the window is chosen
  (minutely up to 1 day, hourly up to 30 days, daily beyond);
- each bucket is `ceil(days * 86400 / max_beat)` seconds wide, but never
  narrower than the table's period;
- the window starts at `now - days`, floored to the table's period so bucket
  edges stay put between calls within one period;
- rows and buckets are walked together once, oldest first.

A bucket with no counts is empty. Otherwise its status is Maintenance if any
maintenance was counted, Down if any failure was counted, else Up.
"""
import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, NamedTuple, Optional, Sequence, Tuple, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import HeartbeatStatus, Resolution, RESOLUTIONS
from ..models.heartbeat import isoformat_utc

logger = logging.getLogger(__name__)

DEFAULT_MAX_BEAT = 120
MAX_BEAT_LIMIT = 1000
MAX_DAYS = 365
SECONDS_PER_DAY = 86400


class StatIntegrityError(ValueError):
    """Rollup rows for a monitor are duplicated or out of timestamp order."""


class StatRow(NamedTuple):
    """The columns the downsampler reads from a rollup table."""
    timestamp: int
    up: int = 0
    down: int = 0
    extras: Optional[str] = None


@dataclass(frozen=True)
class BucketPlan:
    """Bucket layout for one downsampling call."""
    resolution: Resolution
    window_start: int
    bucket_duration: int
    bucket_count: int

    @property
    def window_end(self) -> int:
        return self.window_start + self.bucket_duration * self.bucket_count

    def bounds(self, index: int) -> Tuple[int, int]:
        """Half-open [start, end) of bucket `index`."""
        start = self.window_start + index * self.bucket_duration
        return start, start + self.bucket_duration


@dataclass
class DisplayBucket:
    """One bar of the timeline with the counters merged into it."""
    start: int
    end: int
    up: int = 0
    down: int = 0
    maintenance: int = 0

    @property
    def status(self) -> Optional[HeartbeatStatus]:
        return derive_bucket_status(self)

    @property
    def is_empty(self) -> bool:
        return self.status is None

    @property
    def time(self) -> str:
        """Bucket end as ISO-8601 UTC with millisecond precision."""
        return isoformat_utc(datetime.fromtimestamp(self.end, tz=timezone.utc))

    def to_public_json(self) -> Union[int, dict]:
        """Heartbeat-shaped entry, or 0 for an empty slot."""
        status = self.status
        if status is None:
            return 0
        return {
            "status": int(status),
            "time": self.time,
            "msg": "",
            "ping": None,
        }


# Evaluated top to bottom; first match wins. Only reached for non-empty buckets.
BUCKET_STATUS_RULES: List[Tuple[Callable[[Any], bool], HeartbeatStatus]] = [
    (lambda counts: counts.maintenance > 0, HeartbeatStatus.MAINTENANCE),
    (lambda counts: counts.down > 0, HeartbeatStatus.DOWN),
    (lambda counts: True, HeartbeatStatus.UP),
]


def derive_bucket_status(counts) -> Optional[HeartbeatStatus]:
    """Status for anything with up/down/maintenance counters, None if empty."""
    if not (counts.up or counts.down or counts.maintenance):
        return None
    for predicate, status in BUCKET_STATUS_RULES:
        if predicate(counts):
            return status
    return None


def _leading_int(value) -> int:
    """Integer part of a query value like "7.5"; non-numeric input raises."""
    if isinstance(value, str):
        value = float(value.strip())
    return int(value)


def clamp_days(days) -> int:
    """Coerce a look-back window to an integer in [0, MAX_DAYS]."""
    try:
        value = _leading_int(days)
    except (TypeError, ValueError, OverflowError):
        value = 0
    return max(0, min(MAX_DAYS, value))


def clamp_max_beat(max_beat, default: int = DEFAULT_MAX_BEAT) -> int:
    """Coerce a bucket count to [1, MAX_BEAT_LIMIT]; missing or zero means default."""
    try:
        value = _leading_int(max_beat)
    except (TypeError, ValueError, OverflowError):
        value = 0
    if not value:
        value = default
    return max(1, min(value, MAX_BEAT_LIMIT))


def select_resolution(days: int) -> Resolution:
    """Coarsest-needed table for a window: the first one whose range covers it."""
    for resolution, source in RESOLUTIONS.items():
        if source.max_days is None or days <= source.max_days:
            return resolution
    # RESOLUTIONS always ends with an unbounded entry
    raise LookupError(f"No rollup resolution serves a {days}-day window")


def plan_buckets(days: int, max_beat: int, now_ts: int) -> BucketPlan:
    """Lay out `max_beat` buckets covering `days` ending around `now_ts`."""
    resolution = select_resolution(days)
    period = RESOLUTIONS[resolution].period_seconds

    ideal_duration = math.ceil(days * SECONDS_PER_DAY / max_beat)
    bucket_duration = max(ideal_duration, period)
    window_start = ((now_ts - days * SECONDS_PER_DAY) // period) * period

    return BucketPlan(
        resolution=resolution,
        window_start=window_start,
        bucket_duration=bucket_duration,
        bucket_count=max_beat,
    )


def maintenance_count(extras) -> int:
    """Maintenance counter from a row's extras payload; 0 if unreadable."""
    if not extras:
        return 0
    try:
        payload = json.loads(extras) if isinstance(extras, (str, bytes)) else extras
        return int(payload.get("maintenance") or 0)
    except (ValueError, TypeError, AttributeError, OverflowError) as e:
        logger.debug(f"Ignoring malformed stat extras {extras!r}: {e}")
        return 0


def merge_into_buckets(rows: Sequence, plan: BucketPlan) -> List[DisplayBucket]:
    """Merge rollup rows into the plan's buckets in a single pass.

    `rows` must be sorted by strictly increasing timestamp. Rows before the
    window start or at/after the window end are not counted.

    Raises:
        StatIntegrityError: if two consecutive rows are not strictly increasing
    """
    buckets: List[DisplayBucket] = []
    index = 0
    row_count = len(rows)
    last_timestamp: Optional[int] = None

    for bucket_index in range(plan.bucket_count):
        start, end = plan.bounds(bucket_index)
        bucket = DisplayBucket(start=start, end=end)

        while index < row_count and rows[index].timestamp < end:
            row = rows[index]
            if last_timestamp is not None and row.timestamp <= last_timestamp:
                raise StatIntegrityError(
                    f"Rollup timestamp {row.timestamp} follows {last_timestamp}"
                )
            last_timestamp = row.timestamp
            index += 1

            if row.timestamp < start:
                continue

            bucket.up += int(row.up or 0)
            bucket.down += int(row.down or 0)
            bucket.maintenance += maintenance_count(row.extras)

        buckets.append(bucket)

    return buckets


async def fetch_stat_rows(
    db: AsyncSession,
    monitor_id: int,
    resolution: Resolution,
    since: int,
) -> List[StatRow]:
    """All rollup rows for a monitor from `since` on, oldest first."""
    model = RESOLUTIONS[resolution].model
    result = await db.execute(
        select(model.timestamp, model.up, model.down, model.extras)
        .where(
            model.monitor_id == monitor_id,
            model.timestamp >= since,
        )
        .order_by(model.timestamp.asc())
    )
    return [StatRow(*row) for row in result.all()]


def _epoch_seconds(now) -> int:
    if now is None:
        return int(datetime.now(timezone.utc).timestamp())
    if isinstance(now, datetime):
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return int(now.timestamp())
    return int(now)


async def downsample(
    db: AsyncSession,
    monitor_id: int,
    days,
    max_beat=DEFAULT_MAX_BEAT,
    now: Optional[Union[datetime, int, float]] = None,
) -> List[DisplayBucket]:
    """Build the fixed-width timeline for one monitor.

    Args:
        db: Session used for the single rollup read
        monitor_id: Monitor to load stats for
        days: Look-back window, clamped to [0, 365]; callers send days > 0
        max_beat: Number of buckets, clamped to [1, 1000]
        now: Reference instant (naive datetimes are UTC); defaults to current time

    Returns:
        Exactly `max_beat` buckets, oldest first
    """
    days = clamp_days(days)
    max_beat = clamp_max_beat(max_beat)
    plan = plan_buckets(days, max_beat, _epoch_seconds(now))

    rows = await fetch_stat_rows(db, monitor_id, plan.resolution, plan.window_start)
    buckets = merge_into_buckets(rows, plan)

    logger.debug(
        f"Monitor {monitor_id}: {len(rows)} {plan.resolution.value} rows -> "
        f"{plan.bucket_count} buckets of {plan.bucket_duration}s"
    )
    return buckets
