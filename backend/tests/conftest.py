"""
Shared pytest fixtures for the StatusPage test suite.

Every test gets a fresh in-memory SQLite database with the full schema.
"""

import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from statuspage.database import Base, get_db
from statuspage.main import create_app
from statuspage.models import Heartbeat, Monitor, MonitorGroup, StatusPage, monitor_group


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app, sharing the test database."""
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ============================================================================
# Data helpers
# ============================================================================


async def add_monitor(db, name="svc", active=1):
    monitor = Monitor(name=name, active=active)
    db.add(monitor)
    await db.flush()
    return monitor


async def add_heartbeat(db, monitor, status, time, ping=None, msg=None):
    heartbeat = Heartbeat(monitor_id=monitor.id, status=int(status), time=time, ping=ping, msg=msg)
    db.add(heartbeat)
    await db.flush()
    return heartbeat


async def add_status_page(db, slug, monitors, public=True, heartbeat_bar_days=0, title=None):
    page = StatusPage(
        slug=slug,
        title=title or slug.title(),
        heartbeat_bar_days=heartbeat_bar_days,
    )
    db.add(page)
    await db.flush()

    group = MonitorGroup(status_page_id=page.id, name="Services", public=1 if public else 0)
    db.add(group)
    await db.flush()

    for weight, monitor in enumerate(monitors):
        await db.execute(
            monitor_group.insert().values(monitor_id=monitor.id, group_id=group.id, weight=weight)
        )
    return page
