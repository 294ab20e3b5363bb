import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from spacenexus_alerts.db.base import Base  # noqa: E402
from spacenexus_alerts.observability.alerts import get_alert_store  # noqa: E402
from spacenexus_alerts.observability.scheduler import get_scheduler_store  # noqa: E402

NOW = datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture(autouse=True)
def reset_observability():
    get_alert_store().reset()
    get_scheduler_store().reset()
    yield
    get_alert_store().reset()
    get_scheduler_store().reset()
