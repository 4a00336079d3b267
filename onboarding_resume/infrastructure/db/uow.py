from __future__ import annotations

import logging
from typing import Any, Optional, Type

import psycopg
from psycopg import errors as pg_errors
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from onboarding_resume.domain.errors import ConcurrencyConflict, InfrastructureError
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.infrastructure.db.sessions_repo import PgSessionRepository
from onboarding_resume.infrastructure.db.trackers_repo import PgTrackerDirectory
from onboarding_resume.infrastructure.db.verification_codes_repo import (
    PgVerificationCodeRepository,
)

logger = logging.getLogger(__name__)

# Lost races the caller may retry as a whole.
_CONFLICT_ERRORS = (pg_errors.SerializationFailure, pg_errors.DeadlockDetected)


def translate_db_error(exc: BaseException) -> Optional[Exception]:
    """Map a driver error onto the domain taxonomy (None = leave as is)."""
    if isinstance(exc, _CONFLICT_ERRORS):
        return ConcurrencyConflict(str(exc))
    if isinstance(exc, (psycopg.Error, PoolTimeout)):
        return InfrastructureError(f"database error: {exc.__class__.__name__}")
    return None


class PgUnitOfWork(UnitOfWorkPort):
    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool
        self._conn_cm: Optional[Any] = None
        self._conn: Optional[psycopg.AsyncConnection] = None
        self._committed: bool = False
        self.codes: PgVerificationCodeRepository
        self.sessions: PgSessionRepository
        self.trackers: PgTrackerDirectory

    async def __aenter__(self) -> "PgUnitOfWork":
        self._conn_cm = self._pool.connection()
        try:
            self._conn = await self._conn_cm.__aenter__()
        except Exception as exc:
            self._conn_cm = None
            mapped = translate_db_error(exc)
            if mapped is not None:
                raise mapped from exc
            raise
        self.codes = PgVerificationCodeRepository(self._conn)
        self.sessions = PgSessionRepository(self._conn)
        self.trackers = PgTrackerDirectory(self._conn)
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: Any,
    ) -> None:
        try:
            if self._conn:
                if exc_value or not self._committed:
                    try:
                        await self._conn.rollback()
                    except psycopg.Error:
                        logger.warning("rollback failed", exc_info=True)
        finally:
            if self._conn_cm:
                await self._conn_cm.__aexit__(exc_type, exc_value, traceback)
            self._conn = None
            self._conn_cm = None
            self._committed = False

        if exc_value is not None:
            mapped = translate_db_error(exc_value)
            if mapped is not None:
                raise mapped from exc_value

    async def commit(self) -> None:
        if not self._conn:
            raise RuntimeError("No connection available to commit")
        try:
            await self._conn.commit()
        except psycopg.Error as exc:
            raise translate_db_error(exc) from exc
        self._committed = True

    async def rollback(self) -> None:
        if self._conn:
            await self._conn.rollback()
        self._committed = False
