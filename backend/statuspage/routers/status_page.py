"""Public status page API - page config, timelines, badge, manifest."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models import StatusPage
from ..schemas.status_page import (
    BadgeResponse,
    HeartbeatListResponse,
    ManifestIcon,
    ManifestResponse,
    StatusPageConfig,
    StatusPageResponse,
)
from ..services.aggregate import (
    BadgeColors,
    DEFAULT_DOWN_COLOR,
    DEFAULT_MAINTENANCE_COLOR,
    DEFAULT_PARTIAL_COLOR,
    DEFAULT_STYLE,
    DEFAULT_UP_COLOR,
    NA_COLOR,
    evaluate,
)
from ..services.downsampler import StatIntegrityError, clamp_days, clamp_max_beat, downsample
from ..services.status_pages import (
    get_heartbeat_tail,
    get_public_group_list,
    get_public_monitor_ids,
    get_status_page_by_slug,
    get_uptime_24h,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/status-page", tags=["status-page"])


async def _get_page_or_404(db: AsyncSession, slug: str, detail: str = "Status Page Not Found") -> StatusPage:
    status_page = await get_status_page_by_slug(db, slug)
    if not status_page:
        raise HTTPException(status_code=404, detail=detail)
    return status_page


@router.get("/heartbeat/{slug}", response_model=HeartbeatListResponse)
async def get_status_page_heartbeats(
    slug: str,
    days: Optional[str] = Query(default=None),
    max_beat: Optional[str] = Query(default=None, alias="maxBeat"),
    db: AsyncSession = Depends(get_db),
):
    """Timeline and 24h uptime for every public monitor of a page.

    With a day range the timeline is downsampled from rollups to `maxBeat`
    bars; without one it is the raw heartbeat tail.
    """
    status_page = await _get_page_or_404(db, slug)

    heartbeat_bar_days = clamp_days(days if days is not None else status_page.heartbeat_bar_days)
    bucket_count = clamp_max_beat(max_beat, default=settings.default_max_beat)

    heartbeat_list = {}
    uptime_list = {}
    try:
        monitor_ids = await get_public_monitor_ids(db, status_page.id)

        for monitor_id in monitor_ids:
            if heartbeat_bar_days > 0:
                buckets = await downsample(db, monitor_id, heartbeat_bar_days, bucket_count)
                heartbeat_list[str(monitor_id)] = [bucket.to_public_json() for bucket in buckets]
            else:
                heartbeat_list[str(monitor_id)] = await get_heartbeat_tail(
                    db, monitor_id, settings.heartbeat_tail_limit
                )

            uptime_list[f"{monitor_id}_24"] = await get_uptime_24h(db, monitor_id)
    except (SQLAlchemyError, StatIntegrityError) as e:
        logger.error(f"Error building heartbeat list for {slug}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return HeartbeatListResponse(heartbeat_list=heartbeat_list, uptime_list=uptime_list)


@router.get("/{slug}", response_model=StatusPageResponse)
async def get_status_page(slug: str, db: AsyncSession = Depends(get_db)):
    """Status page config and public monitor list."""
    status_page = await _get_page_or_404(db, slug)

    try:
        groups = await get_public_group_list(db, status_page.id)
    except SQLAlchemyError as e:
        logger.error(f"Error loading status page {slug}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return StatusPageResponse(
        config=StatusPageConfig.model_validate(status_page),
        public_group_list=groups,
    )


@router.get("/{slug}/badge", response_model=BadgeResponse)
async def get_status_page_badge(
    slug: str,
    label: Optional[str] = None,
    up_color: str = Query(default=DEFAULT_UP_COLOR, alias="upColor"),
    down_color: str = Query(default=DEFAULT_DOWN_COLOR, alias="downColor"),
    partial_color: str = Query(default=DEFAULT_PARTIAL_COLOR, alias="partialColor"),
    maintenance_color: str = Query(default=DEFAULT_MAINTENANCE_COLOR, alias="maintenanceColor"),
    style: str = DEFAULT_STYLE,
    db: AsyncSession = Depends(get_db),
):
    """Overall page status as a shields.io endpoint badge.

    An unknown page, or one without public monitors, reads N/A.
    """
    colors = BadgeColors(
        up=up_color,
        down=down_color,
        partial=partial_color,
        maintenance=maintenance_color,
        na=NA_COLOR,
    )

    try:
        status_page = await get_status_page_by_slug(db, slug)
        monitor_ids = await get_public_monitor_ids(db, status_page.id) if status_page else []
        badge = await evaluate(db, monitor_ids, colors, label)
    except SQLAlchemyError as e:
        logger.error(f"Error evaluating badge for {slug}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return BadgeResponse(
        label=badge.label,
        message=badge.message,
        color=badge.color,
        style=style,
    )


@router.get("/{slug}/manifest.json", response_model=ManifestResponse)
async def get_status_page_manifest(slug: str, db: AsyncSession = Depends(get_db)):
    """Web app manifest for installing the page."""
    status_page = await _get_page_or_404(db, slug, detail="Not Found")

    return ManifestResponse(
        name=status_page.title,
        start_url=f"/status/{status_page.slug}",
        icons=[ManifestIcon(src=status_page.icon)],
    )
