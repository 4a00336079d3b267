from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from onboarding_resume.domain.entities import Session


class SessionRepositoryPort(Protocol):
    async def lock_tracker(self, tracker_id: str) -> None:
        """
        Serialize session writes for one tracker until the transaction ends,
        so "create new, revoke others" cannot interleave with another issuer.
        """

    async def add(self, session: Session) -> Session:
        """Persist a new session and return it with id and timestamps."""

    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        """Lookup regardless of state (revoked/expired included)."""

    async def touch(
        self, token_hash: str, now: datetime, expires_at: datetime
    ) -> Optional[Session]:
        """
        Atomically set last_used_at=now and expires_at for an unrevoked,
        unexpired session. None if the session was not active at update time.
        """

    async def revoke(self, token_hash: str, now: datetime, reason: str) -> None:
        """Set revoked=true. Idempotent; no-op for unknown tokens."""

    async def revoke_for_tracker(
        self,
        tracker_id: str,
        now: datetime,
        reason: str,
        *,
        keep_session_id: str | None = None,
    ) -> int:
        """Revoke every unrevoked session of the tracker except `keep_session_id`."""
