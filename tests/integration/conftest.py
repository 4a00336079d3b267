# tests/integration/conftest.py
import asyncio
import os
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import psycopg
import pytest
import pytest_asyncio
from psycopg_pool import AsyncConnectionPool
from redis.asyncio import Redis

from onboarding_resume.infrastructure.db.migrate import apply_one, applied_versions, pending_migrations
from onboarding_resume.infrastructure.db.pool import create_pool
from onboarding_resume.settings import get_settings

MIGRATIONS = Path(__file__).resolve().parents[2] / "migrations"

requires_services = pytest.mark.skipif(
    os.environ.get("RUN_INTEGRATION") != "1",
    reason="set RUN_INTEGRATION=1 with Postgres and Redis running",
)


async def _wait_pool_ready(p: AsyncConnectionPool, timeout: float = 30.0) -> None:
    """Retry simple SELECT until Postgres accepts connections."""
    deadline = time.monotonic() + timeout
    last_exc: Exception | None = None
    while time.monotonic() < deadline:
        try:
            async with p.connection(timeout=1) as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1;")
                    await cur.fetchone()
            return
        except Exception as e:
            last_exc = e
            await asyncio.sleep(0.5)
    if last_exc:
        raise last_exc
    raise TimeoutError("database not ready")


def _migrate(database_url: str) -> None:
    with psycopg.connect(database_url) as conn:
        for path in pending_migrations(applied_versions(conn), MIGRATIONS):
            apply_one(conn, path)


@pytest_asyncio.fixture
async def pool():
    settings = get_settings()
    p = create_pool(settings.database_url, max_size=10, timeout=30)
    await p.open()
    await _wait_pool_ready(p)
    await asyncio.to_thread(_migrate, settings.database_url)
    async with p.connection() as conn:
        await conn.execute(
            "TRUNCATE sessions, verification_codes, onboarding_trackers RESTART IDENTITY CASCADE;"
        )
    try:
        yield p
    finally:
        await p.close()


@pytest_asyncio.fixture
async def redis_client():
    r = Redis.from_url(get_settings().redis_url, encoding="utf-8", decode_responses=True)
    try:
        yield r
    finally:
        await r.aclose()


@pytest.fixture
def insert_tracker(pool):
    async def _insert(
        sin_hash: str = "sin-h",
        email_hash: str = "email-h",
        *,
        resume_expires_at: datetime | None = None,
        completed: bool = False,
    ) -> str:
        expires = resume_expires_at or datetime.now(timezone.utc) + timedelta(days=30)
        async with pool.connection() as conn:
            cur = await conn.execute(
                """
                INSERT INTO onboarding_trackers
                    (sin_hash, email_hash, company_id, current_step, resume_expires_at, completed)
                VALUES (%s, %s, 'acme-freight', 'driving_history', %s, %s)
                RETURNING id
                """,
                (sin_hash, email_hash, expires, completed),
            )
            (tracker_id,) = await cur.fetchone()
        return str(tracker_id)

    return _insert
