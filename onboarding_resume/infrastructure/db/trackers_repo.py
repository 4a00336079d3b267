from __future__ import annotations

from typing import Optional

import psycopg

from onboarding_resume.domain.entities import Tracker
from onboarding_resume.domain.ports.tracker_directory import TrackerDirectoryPort


class PgTrackerDirectory(TrackerDirectoryPort):
    """
    Read-only access to `onboarding_trackers`, which the onboarding-tracker
    subsystem owns. Nothing here writes to that table.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    _SELECT = """
        SELECT id, sin_hash, email_hash, company_id, current_step,
               resume_expires_at, completed, terminated
        FROM onboarding_trackers
    """

    @staticmethod
    def _to_tracker(row: tuple) -> Tracker:
        (
            id_,
            sin_hash,
            email_hash,
            company_id,
            current_step,
            resume_expires_at,
            completed,
            terminated,
        ) = row
        return Tracker(
            id=str(id_),
            sin_hash=sin_hash,
            email_hash=email_hash,
            company_id=str(company_id),
            current_step=str(current_step),
            resume_expires_at=resume_expires_at,
            completed=bool(completed),
            terminated=bool(terminated),
        )

    async def find_by_identity(self, sin_hash: str, email_hash: str) -> Optional[Tracker]:
        sql = self._SELECT + """
        WHERE sin_hash = %s AND email_hash = %s AND NOT terminated
        LIMIT 1
        """
        async with self._conn.cursor() as cur:
            await cur.execute(sql, (sin_hash, email_hash))
            row = await cur.fetchone()
        return self._to_tracker(row) if row else None

    async def get(self, tracker_id: str) -> Optional[Tracker]:
        sql = self._SELECT + " WHERE id = %s"
        async with self._conn.cursor() as cur:
            await cur.execute(sql, (tracker_id,))
            row = await cur.fetchone()
        return self._to_tracker(row) if row else None
