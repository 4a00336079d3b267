from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import psycopg
from psycopg.rows import dict_row

from onboarding_resume.domain.entities import Purpose, VerificationCode
from onboarding_resume.domain.ports.verification_code_repository import (
    VerificationCodeRepositoryPort,
)

_COLUMNS = """
    id, tracker_id, sin_hash, email_hash, code_hash, purpose, expires_at,
    attempts, max_attempts, consumed_at, created_at, updated_at
"""


def _to_code(row: dict[str, Any]) -> VerificationCode:
    return VerificationCode(
        id=str(row["id"]),
        tracker_id=str(row["tracker_id"]),
        sin_hash=row["sin_hash"],
        email_hash=row["email_hash"],
        code_hash=row["code_hash"],
        purpose=Purpose(row["purpose"]),
        expires_at=row["expires_at"],
        attempts=int(row["attempts"] or 0),
        max_attempts=int(row["max_attempts"]),
        consumed_at=row["consumed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PgVerificationCodeRepository(VerificationCodeRepositoryPort):
    """
    Postgres implementation of VerificationCodeRepositoryPort.

    NOTE:
    - Bound to an *active async connection* supplied by the UoW; never commits.
    - The attempt counter only moves through a single conditional UPDATE, so
      concurrent checks each get a distinct slot (or none).
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def _fetch_one(self, sql: str, params: dict[str, Any]) -> Optional[VerificationCode]:
        async with self._conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(sql, params)
            row = await cur.fetchone()
        return _to_code(row) if row else None

    async def add(self, code: VerificationCode) -> VerificationCode:
        sql = f"""
        INSERT INTO verification_codes
            (tracker_id, sin_hash, email_hash, code_hash, purpose,
             expires_at, attempts, max_attempts, created_at, updated_at)
        VALUES
            (%(tracker_id)s, %(sin_hash)s, %(email_hash)s, %(code_hash)s, %(purpose)s,
             %(expires_at)s, %(attempts)s, %(max_attempts)s, now(), now())
        RETURNING {_COLUMNS}
        """
        created = await self._fetch_one(
            sql,
            {
                "tracker_id": code.tracker_id,
                "sin_hash": code.sin_hash,
                "email_hash": code.email_hash,
                "code_hash": code.code_hash,
                "purpose": code.purpose.value,
                "expires_at": code.expires_at,
                "attempts": code.attempts,
                "max_attempts": code.max_attempts,
            },
        )
        if created is None:
            raise RuntimeError("insert into verification_codes returned no row")
        return created

    async def get(self, code_id: str) -> Optional[VerificationCode]:
        sql = f"SELECT {_COLUMNS} FROM verification_codes WHERE id = %(id)s"
        return await self._fetch_one(sql, {"id": int(code_id)})

    async def get_latest(
        self, sin_hash: str, email_hash: str, purpose: Purpose
    ) -> Optional[VerificationCode]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM verification_codes
        WHERE sin_hash = %(sin_hash)s
          AND email_hash = %(email_hash)s
          AND purpose = %(purpose)s
        ORDER BY created_at DESC, id DESC
        LIMIT 1
        """
        return await self._fetch_one(
            sql,
            {"sin_hash": sin_hash, "email_hash": email_hash, "purpose": purpose.value},
        )

    async def consume_attempt(
        self, code_id: str, now: datetime
    ) -> Optional[VerificationCode]:
        sql = f"""
        UPDATE verification_codes
        SET attempts = attempts + 1,
            updated_at = %(now)s
        WHERE id = %(id)s
          AND consumed_at IS NULL
          AND expires_at > %(now)s
          AND attempts < max_attempts
        RETURNING {_COLUMNS}
        """
        return await self._fetch_one(sql, {"id": int(code_id), "now": now})

    async def mark_consumed(self, code_id: str, now: datetime) -> bool:
        sql = """
        UPDATE verification_codes
        SET consumed_at = %(now)s,
            updated_at = %(now)s
        WHERE id = %(id)s AND consumed_at IS NULL
        """
        async with self._conn.cursor() as cur:
            await cur.execute(sql, {"id": int(code_id), "now": now})
            return cur.rowcount == 1
