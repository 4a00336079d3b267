from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from psycopg_pool import AsyncConnectionPool

from onboarding_resume.domain.services import utcnow

logger = logging.getLogger("onboarding_resume.infrastructure.reaper")

# Deletes are idempotent, so several reapers may run without coordination.
PURGE_SESSIONS_SQL = """
DELETE FROM sessions
WHERE (revoked AND revoked_at < %(cutoff)s)
   OR expires_at < %(cutoff)s
"""

PURGE_CODES_SQL = """
DELETE FROM verification_codes
WHERE expires_at < %(cutoff)s
"""


@dataclass(frozen=True)
class ReapReport:
    sessions: int
    codes: int


class RecordReaper:
    """
    Physically removes session and verification-code rows that have been
    dead (revoked or expired) for longer than the retention period.
    """

    def __init__(
        self,
        *,
        pool: AsyncConnectionPool,
        retention: timedelta,
        interval: float = 3600.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.pool = pool
        self.retention = retention
        self.interval = interval
        self.clock = clock

    async def run_forever(self) -> None:
        logger.info(
            "reaper started",
            extra={
                "retention_days": self.retention.days,
                "interval": self.interval,
            },
        )
        while True:
            try:
                await self.reap_once()
            except Exception:  # noqa: BLE001
                logger.exception("reaper pass failed")
            await asyncio.sleep(self.interval)

    async def reap_once(self) -> ReapReport:
        cutoff = self.clock() - self.retention
        async with self.pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(PURGE_SESSIONS_SQL, {"cutoff": cutoff})
                    sessions = cur.rowcount
                    await cur.execute(PURGE_CODES_SQL, {"cutoff": cutoff})
                    codes = cur.rowcount

        report = ReapReport(sessions=max(sessions, 0), codes=max(codes, 0))
        logger.info(
            "reaper pass done",
            extra={"sessions": report.sessions, "codes": report.codes, "cutoff": cutoff.isoformat()},
        )
        return report
