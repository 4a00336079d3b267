from contextlib import asynccontextmanager
from datetime import timedelta

import pytest

from onboarding_resume.infrastructure.reaper.reaper import (
    PURGE_CODES_SQL,
    PURGE_SESSIONS_SQL,
    RecordReaper,
)
from tests.fakes import FrozenClock


class _Cursor:
    def __init__(self, rowcounts):
        self.executed = []
        self._rowcounts = list(rowcounts)
        self.rowcount = -1

    async def execute(self, sql, params=None):
        self.executed.append((sql, params))
        self.rowcount = self._rowcounts.pop(0)


class _Conn:
    def __init__(self, cursor):
        self._cursor = cursor

    @asynccontextmanager
    async def transaction(self):
        yield

    @asynccontextmanager
    async def cursor(self):
        yield self._cursor


class _Pool:
    def __init__(self, cursor):
        self._cursor = cursor

    @asynccontextmanager
    async def connection(self):
        yield _Conn(self._cursor)


@pytest.mark.asyncio
async def test_reap_once_purges_with_retention_cutoff():
    clock = FrozenClock()
    cursor = _Cursor([3, 7])
    reaper = RecordReaper(pool=_Pool(cursor), retention=timedelta(days=90), clock=clock)

    report = await reaper.reap_once()

    assert report.sessions == 3
    assert report.codes == 7
    cutoff = clock() - timedelta(days=90)
    assert cursor.executed == [
        (PURGE_SESSIONS_SQL, {"cutoff": cutoff}),
        (PURGE_CODES_SQL, {"cutoff": cutoff}),
    ]


@pytest.mark.asyncio
async def test_unknown_rowcount_reports_zero():
    reaper = RecordReaper(
        pool=_Pool(_Cursor([-1, -1])), retention=timedelta(days=1), clock=FrozenClock()
    )

    report = await reaper.reap_once()

    assert (report.sessions, report.codes) == (0, 0)
