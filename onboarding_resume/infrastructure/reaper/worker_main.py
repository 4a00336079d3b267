from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import suppress
from datetime import timedelta

from onboarding_resume.infrastructure.db.pool import create_pool
from onboarding_resume.infrastructure.reaper.reaper import RecordReaper
from onboarding_resume.logging import setup_logging
from onboarding_resume.settings import get_settings

logger = logging.getLogger(__name__)


async def _run() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)

    pool = create_pool(settings.database_url, max_size=2)
    await pool.open()
    logger.info("reaper: pool opened")

    reaper = RecordReaper(
        pool=pool,
        retention=timedelta(days=settings.reaper_retention_days),
        interval=float(settings.reaper_interval_seconds),
    )

    stop = asyncio.Event()

    def _on_signal(*_: object) -> None:
        logger.info("reaper: stop signal received")
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_signal)

    worker_task = asyncio.create_task(reaper.run_forever())
    logger.info("reaper: started run_forever loop")

    await stop.wait()

    worker_task.cancel()
    with suppress(asyncio.CancelledError):
        await worker_task

    await pool.close()
    logger.info("reaper: stopped cleanly")


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
