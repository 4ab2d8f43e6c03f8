"""Aggregate status evaluator - one badge value for a group of monitors."""
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Heartbeat, HeartbeatStatus

logger = logging.getLogger(__name__)

DEFAULT_UP_COLOR = "#4c1"
DEFAULT_DOWN_COLOR = "#e05d44"
DEFAULT_PARTIAL_COLOR = "#F6BE00"
DEFAULT_MAINTENANCE_COLOR = "#808080"
NA_COLOR = "#999"
DEFAULT_STYLE = "flat"


@dataclass(frozen=True)
class BadgeColors:
    """Badge colors per aggregate state."""
    up: str = DEFAULT_UP_COLOR
    down: str = DEFAULT_DOWN_COLOR
    partial: str = DEFAULT_PARTIAL_COLOR
    maintenance: str = DEFAULT_MAINTENANCE_COLOR
    na: str = NA_COLOR


@dataclass
class StatusFlags:
    """What the latest heartbeats of a monitor group contain."""
    has_up: bool = False
    has_down: bool = False
    has_maintenance: bool = False

    def add(self, status: int) -> None:
        """Fold one latest-heartbeat status in. Pending counts as nothing."""
        if status == HeartbeatStatus.MAINTENANCE:
            self.has_maintenance = True
        elif status == HeartbeatStatus.PENDING:
            pass
        elif status == HeartbeatStatus.UP:
            self.has_up = True
        else:
            self.has_down = True


@dataclass(frozen=True)
class BadgeStatus:
    """Aggregate result handed to the badge renderer."""
    label: str
    color: str
    message: str


class BadgeRule(NamedTuple):
    matches: Callable[[StatusFlags], bool]
    message: str
    color_key: str  # attribute of BadgeColors
    labelled: bool  # whether a caller label is shown


# Evaluated top to bottom; first match wins. Maintenance and any failure
# always outrank healthy monitors.
BADGE_RULES: List[BadgeRule] = [
    BadgeRule(lambda f: not (f.has_up or f.has_down or f.has_maintenance), "N/A", "na", False),
    BadgeRule(lambda f: f.has_maintenance, "Maintenance", "maintenance", True),
    BadgeRule(lambda f: f.has_up and not f.has_down, "Up", "up", True),
    BadgeRule(lambda f: f.has_up and f.has_down, "Degraded", "partial", True),
    BadgeRule(lambda f: True, "Down", "down", True),
]


def reduce_statuses(statuses: Iterable[Optional[int]]) -> StatusFlags:
    """Classify latest statuses; None (monitor without heartbeats) is skipped."""
    flags = StatusFlags()
    for status in statuses:
        if status is None:
            continue
        flags.add(status)
    return flags


def resolve_badge(
    flags: StatusFlags,
    colors: Optional[BadgeColors] = None,
    label: Optional[str] = None,
) -> BadgeStatus:
    """Pick the message and color for a set of flags."""
    colors = colors or BadgeColors()
    for rule in BADGE_RULES:
        if rule.matches(flags):
            return BadgeStatus(
                label=(label or "") if rule.labelled else "",
                color=getattr(colors, rule.color_key),
                message=rule.message,
            )
    raise LookupError("No badge rule matched")  # last rule always matches


async def get_latest_status(db: AsyncSession, monitor_id: int) -> Optional[int]:
    """Status code of the most recent heartbeat, or None if there is none."""
    result = await db.execute(
        select(Heartbeat.status)
        .where(Heartbeat.monitor_id == monitor_id)
        .order_by(Heartbeat.time.desc(), Heartbeat.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def evaluate(
    db: AsyncSession,
    monitor_ids: Iterable[int],
    colors: Optional[BadgeColors] = None,
    label: Optional[str] = None,
) -> BadgeStatus:
    """Aggregate the latest heartbeat of every monitor into one badge value."""
    statuses = [await get_latest_status(db, monitor_id) for monitor_id in monitor_ids]
    flags = reduce_statuses(statuses)
    badge = resolve_badge(flags, colors, label)
    logger.debug(f"Aggregate of {len(statuses)} monitors: {badge.message}")
    return badge
