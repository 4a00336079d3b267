from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import psycopg
from psycopg.rows import dict_row

from onboarding_resume.domain.entities import Session
from onboarding_resume.domain.ports.session_repository import SessionRepositoryPort

_COLUMNS = """
    id, tracker_id, token_hash, expires_at, last_used_at,
    revoked, revoked_at, revoke_reason, created_at
"""


def _to_session(row: dict[str, Any]) -> Session:
    return Session(
        id=str(row["id"]),
        tracker_id=str(row["tracker_id"]),
        token_hash=row["token_hash"],
        expires_at=row["expires_at"],
        last_used_at=row["last_used_at"],
        revoked=bool(row["revoked"]),
        revoked_at=row["revoked_at"],
        revoke_reason=row["revoke_reason"],
        created_at=row["created_at"],
    )


class PgSessionRepository(SessionRepositoryPort):
    """
    Postgres implementation of SessionRepositoryPort.

    Rows are never deleted here: revocation is a flag, and physical cleanup
    belongs to the reaper.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def _fetch_one(self, sql: str, params: dict[str, Any]) -> Optional[Session]:
        async with self._conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(sql, params)
            row = await cur.fetchone()
        return _to_session(row) if row else None

    async def lock_tracker(self, tracker_id: str) -> None:
        async with self._conn.cursor() as cur:
            await cur.execute(
                "SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))",
                ("sessions:" + tracker_id,),
            )

    async def add(self, session: Session) -> Session:
        sql = f"""
        INSERT INTO sessions
            (tracker_id, token_hash, expires_at, last_used_at, revoked, created_at)
        VALUES
            (%(tracker_id)s, %(token_hash)s, %(expires_at)s, %(last_used_at)s, false, now())
        RETURNING {_COLUMNS}
        """
        created = await self._fetch_one(
            sql,
            {
                "tracker_id": session.tracker_id,
                "token_hash": session.token_hash,
                "expires_at": session.expires_at,
                "last_used_at": session.last_used_at,
            },
        )
        if created is None:
            raise RuntimeError("insert into sessions returned no row")
        return created

    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        sql = f"SELECT {_COLUMNS} FROM sessions WHERE token_hash = %(token_hash)s"
        return await self._fetch_one(sql, {"token_hash": token_hash})

    async def touch(
        self, token_hash: str, now: datetime, expires_at: datetime
    ) -> Optional[Session]:
        sql = f"""
        UPDATE sessions
        SET last_used_at = %(now)s,
            expires_at = %(expires_at)s
        WHERE token_hash = %(token_hash)s
          AND NOT revoked
          AND expires_at > %(now)s
        RETURNING {_COLUMNS}
        """
        return await self._fetch_one(
            sql, {"token_hash": token_hash, "now": now, "expires_at": expires_at}
        )

    async def revoke(self, token_hash: str, now: datetime, reason: str) -> None:
        sql = """
        UPDATE sessions
        SET revoked = true,
            revoked_at = COALESCE(revoked_at, %(now)s),
            revoke_reason = COALESCE(revoke_reason, %(reason)s)
        WHERE token_hash = %(token_hash)s
        """
        async with self._conn.cursor() as cur:
            await cur.execute(sql, {"token_hash": token_hash, "now": now, "reason": reason})

    async def revoke_for_tracker(
        self,
        tracker_id: str,
        now: datetime,
        reason: str,
        *,
        keep_session_id: str | None = None,
    ) -> int:
        sql = """
        UPDATE sessions
        SET revoked = true,
            revoked_at = %(now)s,
            revoke_reason = %(reason)s
        WHERE tracker_id = %(tracker_id)s
          AND NOT revoked
          AND (%(keep_id)s::bigint IS NULL OR id <> %(keep_id)s::bigint)
        """
        params = {
            "tracker_id": tracker_id,
            "now": now,
            "reason": reason,
            "keep_id": int(keep_session_id) if keep_session_id else None,
        }
        async with self._conn.cursor() as cur:
            await cur.execute(sql, params)
            return cur.rowcount
