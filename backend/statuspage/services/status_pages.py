"""Status page lookups - slug resolution, public monitors, raw heartbeat tails."""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Heartbeat, Monitor, MonitorGroup, StatMinutely, StatusPage, monitor_group


async def get_status_page_by_slug(db: AsyncSession, slug: str) -> Optional[StatusPage]:
    """Find a status page; slugs are matched case-insensitively."""
    result = await db.execute(
        select(StatusPage).where(StatusPage.slug == slug.lower())
    )
    return result.scalar_one_or_none()


async def get_public_monitor_ids(db: AsyncSession, status_page_id: int) -> List[int]:
    """Monitors listed in the page's public groups, in display order, without repeats."""
    result = await db.execute(
        select(monitor_group.c.monitor_id)
        .join(MonitorGroup, MonitorGroup.id == monitor_group.c.group_id)
        .where(
            MonitorGroup.status_page_id == status_page_id,
            MonitorGroup.public == 1,
        )
        .order_by(
            MonitorGroup.weight,
            MonitorGroup.id,
            monitor_group.c.weight,
            monitor_group.c.monitor_id,
        )
    )
    seen = set()
    monitor_ids = []
    for monitor_id in result.scalars().all():
        if monitor_id not in seen:
            seen.add(monitor_id)
            monitor_ids.append(monitor_id)
    return monitor_ids


async def get_public_group_list(db: AsyncSession, status_page_id: int) -> List[dict]:
    """Public groups of a page with their monitors, for the page config response."""
    groups_result = await db.execute(
        select(MonitorGroup)
        .where(
            MonitorGroup.status_page_id == status_page_id,
            MonitorGroup.public == 1,
        )
        .order_by(MonitorGroup.weight, MonitorGroup.id)
    )
    groups = groups_result.scalars().all()
    if not groups:
        return []

    members_result = await db.execute(
        select(monitor_group.c.group_id, Monitor.id, Monitor.name)
        .join(Monitor, Monitor.id == monitor_group.c.monitor_id)
        .where(monitor_group.c.group_id.in_([g.id for g in groups]))
        .order_by(monitor_group.c.weight, Monitor.id)
    )
    members = {}
    for group_id, monitor_id, name in members_result.all():
        members.setdefault(group_id, []).append({"id": monitor_id, "name": name})

    return [
        {
            "id": group.id,
            "name": group.name,
            "weight": group.weight,
            "monitorList": members.get(group.id, []),
        }
        for group in groups
    ]


async def get_heartbeat_tail(db: AsyncSession, monitor_id: int, limit: int = 100) -> List[dict]:
    """Latest `limit` heartbeats of a monitor, oldest first."""
    result = await db.execute(
        select(Heartbeat)
        .where(Heartbeat.monitor_id == monitor_id)
        .order_by(Heartbeat.time.desc(), Heartbeat.id.desc())
        .limit(limit)
    )
    heartbeats = result.scalars().all()
    return [hb.to_public_json() for hb in reversed(heartbeats)]


async def get_uptime_24h(db: AsyncSession, monitor_id: int, now: Optional[datetime] = None) -> float:
    """Share of up checks over the last 24 hours, from minutely rollups.

    Returns 0 when there is no data for the period.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    since = int(now.timestamp()) - 86400

    result = await db.execute(
        select(func.sum(StatMinutely.up), func.sum(StatMinutely.down))
        .where(
            StatMinutely.monitor_id == monitor_id,
            StatMinutely.timestamp >= since,
        )
    )
    up, down = result.one()
    up, down = int(up or 0), int(down or 0)
    if up + down == 0:
        return 0.0
    return up / (up + down)
