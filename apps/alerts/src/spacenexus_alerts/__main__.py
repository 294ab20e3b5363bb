import asyncio
import signal
from pathlib import Path

from loguru import logger

from . import __version__
from .core.logging import configure_logging
from .core.settings import settings
from .db.session import async_session, engine
from .scheduling import AlertJobScheduler

APP_ROOT = Path(__file__).resolve().parent.parent.parent


def resolve_schedule_path(raw: str) -> Path:
    path = Path(raw)
    return path if path.is_absolute() else APP_ROOT / path


async def serve() -> None:
    if not settings.alert_job_scheduler_enabled:
        logger.info("Alert job scheduler disabled", reason="alert_job_scheduler_enabled is false")
        return

    schedule_path = resolve_schedule_path(settings.alert_job_schedule_path)
    scheduler = AlertJobScheduler(session_factory=async_session, config_path=schedule_path)
    scheduler.start()
    logger.info("Alert job scheduler enabled", schedule_path=str(schedule_path))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            pass

    try:
        await stop_event.wait()
    finally:
        await scheduler.stop()
        await engine.dispose()


def main() -> None:
    configure_logging(
        service_name=settings.service_name,
        environment=settings.environment,
        version=__version__,
    )
    asyncio.run(serve())


if __name__ == "__main__":
    main()
