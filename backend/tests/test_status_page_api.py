"""
Tests for the public status page endpoints.

Tests cover:
  - 404 for unknown slugs
  - heartbeat list: raw tail (days=0) and downsampled timelines
  - maxBeat/days clamping at the HTTP boundary
  - private groups hidden from every endpoint
  - badge precedence and color overrides
  - page config and manifest
"""

from datetime import datetime, timedelta, timezone

import pytest

from statuspage.models import HeartbeatStatus, StatMinutely
from statuspage.services.aggregate import DEFAULT_PARTIAL_COLOR, NA_COLOR

from conftest import add_heartbeat, add_monitor, add_status_page


def _recent_minute_ts(minutes_ago: int) -> int:
    now_ts = int(datetime.now(timezone.utc).timestamp())
    return (now_ts // 60) * 60 - minutes_ago * 60


@pytest.mark.asyncio
@pytest.mark.parametrize("path", [
    "/api/status-page/missing",
    "/api/status-page/heartbeat/missing",
    "/api/status-page/missing/manifest.json",
])
async def test_unknown_slug_is_404(client, path):
    response = await client.get(path)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_heartbeat_tail_when_no_days(client, db):
    monitor = await add_monitor(db)
    start = datetime(2024, 1, 1)
    for i in range(120):
        status = HeartbeatStatus.DOWN if i == 119 else HeartbeatStatus.UP
        await add_heartbeat(db, monitor, status, start + timedelta(minutes=i), ping=12.5)
    await add_status_page(db, "main", [monitor])
    await db.commit()

    response = await client.get("/api/status-page/heartbeat/main")

    assert response.status_code == 200
    beats = response.json()["heartbeatList"][str(monitor.id)]
    assert len(beats) == 100
    assert beats[0]["time"] == "2024-01-01T00:20:00.000Z"
    assert beats[-1]["status"] == 0
    assert beats[-1]["ping"] == 12.5


@pytest.mark.asyncio
async def test_downsampled_timeline_and_uptime(client, db):
    monitor = await add_monitor(db)
    db.add_all([
        StatMinutely(monitor_id=monitor.id, timestamp=_recent_minute_ts(60), up=3, down=1),
        StatMinutely(monitor_id=monitor.id, timestamp=_recent_minute_ts(59), up=4, down=0),
    ])
    await add_status_page(db, "main", [monitor], heartbeat_bar_days=1)
    await db.commit()

    response = await client.get("/api/status-page/heartbeat/MAIN?maxBeat=10")

    assert response.status_code == 200
    body = response.json()
    beats = body["heartbeatList"][str(monitor.id)]
    assert len(beats) == 10
    assert beats[:9] == [0] * 9
    assert beats[9]["status"] == HeartbeatStatus.DOWN
    assert beats[9]["msg"] == ""
    assert beats[9]["ping"] is None
    assert beats[9]["time"].endswith(".000Z")
    assert body["uptimeList"][f"{monitor.id}_24"] == pytest.approx(7 / 8)


@pytest.mark.asyncio
@pytest.mark.parametrize("query, expected_len", [
    ("days=2&maxBeat=abc", 120),
    ("days=2&maxBeat=5000", 1000),
    ("days=2&maxBeat=-4", 1),
    ("days=900", 120),
])
async def test_query_params_are_clamped(client, db, query, expected_len):
    monitor = await add_monitor(db)
    await add_status_page(db, "main", [monitor])
    await db.commit()

    response = await client.get(f"/api/status-page/heartbeat/main?{query}")

    assert response.status_code == 200
    assert len(response.json()["heartbeatList"][str(monitor.id)]) == expected_len


@pytest.mark.asyncio
async def test_fractional_days_keep_the_timeline(client, db):
    monitor = await add_monitor(db)
    await add_status_page(db, "main", [monitor])
    await db.commit()

    response = await client.get("/api/status-page/heartbeat/main?days=7.5&maxBeat=7")

    assert response.status_code == 200
    assert response.json()["heartbeatList"][str(monitor.id)] == [0] * 7


@pytest.mark.asyncio
async def test_private_groups_are_hidden(client, db):
    public = await add_monitor(db, "public")
    private = await add_monitor(db, "private")
    await add_heartbeat(db, private, HeartbeatStatus.DOWN, datetime(2024, 1, 1))
    await add_heartbeat(db, public, HeartbeatStatus.UP, datetime(2024, 1, 1))
    await add_status_page(db, "main", [public])
    await db.commit()
    await add_status_page(db, "hidden", [private], public=False)
    await db.commit()

    heartbeats = (await client.get("/api/status-page/heartbeat/main")).json()
    assert list(heartbeats["heartbeatList"]) == [str(public.id)]

    badge = (await client.get("/api/status-page/main/badge")).json()
    assert badge["message"] == "Up"

    hidden_badge = (await client.get("/api/status-page/hidden/badge")).json()
    assert hidden_badge["message"] == "N/A"


@pytest.mark.asyncio
async def test_badge_degraded_with_overrides(client, db):
    up = await add_monitor(db, "up")
    down = await add_monitor(db, "down")
    await add_heartbeat(db, up, HeartbeatStatus.UP, datetime(2024, 1, 1))
    await add_heartbeat(db, down, HeartbeatStatus.DOWN, datetime(2024, 1, 1))
    await add_status_page(db, "main", [up, down])
    await db.commit()

    default = (await client.get("/api/status-page/main/badge")).json()
    assert default["message"] == "Degraded"
    assert default["color"] == DEFAULT_PARTIAL_COLOR
    assert default["schemaVersion"] == 1

    custom = (await client.get(
        "/api/status-page/main/badge", params={"label": "Shop", "partialColor": "orange", "style": "plastic"}
    )).json()
    assert custom == {
        "schemaVersion": 1,
        "label": "Shop",
        "message": "Degraded",
        "color": "orange",
        "style": "plastic",
    }


@pytest.mark.asyncio
async def test_badge_for_unknown_page_is_na(client):
    response = await client.get("/api/status-page/nowhere/badge")

    assert response.status_code == 200
    assert response.json()["message"] == "N/A"
    assert response.json()["color"] == NA_COLOR


@pytest.mark.asyncio
async def test_status_page_config(client, db):
    web = await add_monitor(db, "Web")
    api = await add_monitor(db, "API")
    await add_status_page(db, "main", [web, api], heartbeat_bar_days=7, title="Acme Status")
    await db.commit()

    response = await client.get("/api/status-page/main")

    assert response.status_code == 200
    body = response.json()
    assert body["config"]["title"] == "Acme Status"
    assert body["config"]["heartbeatBarDays"] == 7
    group = body["publicGroupList"][0]
    assert group["name"] == "Services"
    assert [m["name"] for m in group["monitorList"]] == ["Web", "API"]


@pytest.mark.asyncio
async def test_manifest(client, db):
    await add_status_page(db, "main", [], title="Acme Status")
    await db.commit()

    response = await client.get("/api/status-page/main/manifest.json")

    assert response.status_code == 200
    assert response.json() == {
        "name": "Acme Status",
        "start_url": "/status/main",
        "display": "standalone",
        "icons": [{"src": "/icon.svg", "sizes": "128x128", "type": "image/png"}],
    }


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.json() == {"status": "healthy"}
