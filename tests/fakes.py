import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

from onboarding_resume.domain.entities import Purpose, Session, Tracker, VerificationCode
from onboarding_resume.domain.errors import ConcurrencyConflict, InfrastructureError

SIN = "046-454-286"
EMAIL = "Robert.Driver@Example.com"
CODE = "482913"


class FrozenClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class FakeCodeRepo:
    """Mirrors the conditional UPDATEs of PgVerificationCodeRepository."""

    def __init__(self) -> None:
        self.rows: dict[str, VerificationCode] = {}
        self.consume_calls: list[str] = []
        self._next = 0

    async def add(self, code: VerificationCode) -> VerificationCode:
        await asyncio.sleep(0)
        self._next += 1
        stored = replace(code, id=str(self._next))
        self.rows[stored.id] = stored
        return replace(stored)

    async def get(self, code_id: str):
        await asyncio.sleep(0)
        row = self.rows.get(code_id)
        return replace(row) if row else None

    async def get_latest(self, sin_hash: str, email_hash: str, purpose: Purpose):
        await asyncio.sleep(0)
        matches = [
            r
            for r in self.rows.values()
            if r.sin_hash == sin_hash and r.email_hash == email_hash and r.purpose == purpose
        ]
        if not matches:
            return None
        return replace(max(matches, key=lambda r: int(r.id)))

    async def consume_attempt(self, code_id: str, now: datetime):
        await asyncio.sleep(0)
        self.consume_calls.append(code_id)
        # check-and-increment with no suspension point in between
        row = self.rows.get(code_id)
        if (
            row is None
            or row.consumed_at is not None
            or row.expires_at <= now
            or row.attempts >= row.max_attempts
        ):
            return None
        row.attempts += 1
        row.updated_at = now
        return replace(row)

    async def mark_consumed(self, code_id: str, now: datetime) -> bool:
        await asyncio.sleep(0)
        row = self.rows.get(code_id)
        if row is None or row.consumed_at is not None:
            return False
        row.consumed_at = now
        return True

    def for_tracker(self, tracker_id: str) -> list[VerificationCode]:
        return [r for r in self.rows.values() if r.tracker_id == tracker_id]


class FakeSessionRepo:
    def __init__(self) -> None:
        self.rows: dict[str, Session] = {}
        self.locks: list[str] = []
        self._next = 0

    def by_token_hash(self, token_hash: str) -> Session | None:
        return next((s for s in self.rows.values() if s.token_hash == token_hash), None)

    async def lock_tracker(self, tracker_id: str) -> None:
        self.locks.append(tracker_id)

    async def add(self, session: Session) -> Session:
        await asyncio.sleep(0)
        self._next += 1
        stored = replace(session, id=str(self._next))
        self.rows[stored.id] = stored
        return replace(stored)

    async def get_by_token_hash(self, token_hash: str):
        await asyncio.sleep(0)
        row = self.by_token_hash(token_hash)
        return replace(row) if row else None

    async def touch(self, token_hash: str, now: datetime, expires_at: datetime):
        await asyncio.sleep(0)
        row = self.by_token_hash(token_hash)
        if row is None or row.revoked or row.expires_at <= now:
            return None
        row.last_used_at = now
        row.expires_at = expires_at
        return replace(row)

    async def revoke(self, token_hash: str, now: datetime, reason: str) -> None:
        row = self.by_token_hash(token_hash)
        if row is None:
            return
        row.revoked = True
        row.revoked_at = row.revoked_at or now
        row.revoke_reason = row.revoke_reason or reason

    async def revoke_for_tracker(
        self, tracker_id: str, now: datetime, reason: str, *, keep_session_id=None
    ) -> int:
        count = 0
        for row in self.rows.values():
            if row.tracker_id == tracker_id and not row.revoked and row.id != keep_session_id:
                row.revoked = True
                row.revoked_at = now
                row.revoke_reason = reason
                count += 1
        return count

    def active_for(self, tracker_id: str, now: datetime) -> list[Session]:
        return [r for r in self.rows.values() if r.tracker_id == tracker_id and r.is_active(now)]


class FakeTrackerDirectory:
    def __init__(self) -> None:
        self.by_id: dict[str, Tracker] = {}

    def put(self, tracker: Tracker) -> Tracker:
        self.by_id[tracker.id] = tracker
        return tracker

    async def find_by_identity(self, sin_hash: str, email_hash: str):
        return next(
            (
                t
                for t in self.by_id.values()
                if t.sin_hash == sin_hash and t.email_hash == email_hash and not t.terminated
            ),
            None,
        )

    async def get(self, tracker_id: str):
        return self.by_id.get(tracker_id)


class InMemoryStore:
    """Shared state behind any number of FakeUoW instances."""

    def __init__(self) -> None:
        self.codes = FakeCodeRepo()
        self.sessions = FakeSessionRepo()
        self.trackers = FakeTrackerDirectory()


class FakeUoW:
    def __init__(self, store: InMemoryStore | None = None):
        self.store = store or InMemoryStore()
        self.codes = self.store.codes
        self.sessions = self.store.sessions
        self.trackers = self.store.trackers
        self.commits = 0
        self.rollbacks = 0
        self._committed = False

    @property
    def committed(self) -> bool:
        return self.commits > 0

    async def __aenter__(self):
        self._committed = False
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc or not self._committed:
            self.rollbacks += 1

    async def commit(self) -> None:
        self.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        self._committed = False


class ConflictingUoW(FakeUoW):
    """Raises ConcurrencyConflict on the first `failures` commits."""

    def __init__(self, store: InMemoryStore | None = None, failures: int = 1):
        super().__init__(store)
        self.failures = failures

    async def commit(self) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise ConcurrencyConflict("could not serialize access")
        await super().commit()


class FakeThrottle:
    """Slot per key, like SET NX; `fail` makes every call raise InfrastructureError."""

    def __init__(self, allow: bool = True, fail: bool = False, clock=None) -> None:
        self.allow = allow
        self.fail = fail
        self.clock = clock or FrozenClock()
        self.calls: list[tuple[str, int]] = []
        self.released: list[str] = []
        self.held: dict[str, datetime] = {}

    async def acquire(self, key: str, window_seconds: int) -> bool:
        self.calls.append((key, window_seconds))
        if self.fail:
            raise InfrastructureError("redis unavailable")
        now = self.clock()
        if not self.allow or self.held.get(key, now) > now:
            return False
        self.held[key] = now + timedelta(seconds=window_seconds)
        return True

    async def release(self, key: str) -> None:
        self.released.append(key)
        if self.fail:
            raise InfrastructureError("redis unavailable")
        self.held.pop(key, None)


class FakeCodeSender:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict[str, Any]] = []

    async def send_code(
        self, *, to: str, code: str, expires_in_minutes: int, idempotency_key=None
    ) -> None:
        self.calls.append(
            {
                "to": to,
                "code": code,
                "expires_in_minutes": expires_in_minutes,
                "idempotency_key": idempotency_key,
            }
        )
        if self.fail:
            raise RuntimeError("SMTP responded 503: unavailable")


class DownUoW:
    """A unit of work whose database cannot be reached."""

    async def __aenter__(self):
        raise InfrastructureError("database error: OperationalError")

    async def __aexit__(self, *exc):
        return None
