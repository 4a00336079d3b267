from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from onboarding_resume.domain.entities import Purpose, VerificationCode


class VerificationCodeRepositoryPort(Protocol):
    async def add(self, code: VerificationCode) -> VerificationCode:
        """Persist a new code record and return it with id and timestamps."""

    async def get(self, code_id: str) -> Optional[VerificationCode]:
        """Fetch one record by id."""

    async def get_latest(
        self, sin_hash: str, email_hash: str, purpose: Purpose
    ) -> Optional[VerificationCode]:
        """Most recently created record for the identity tuple and purpose."""

    async def consume_attempt(
        self, code_id: str, now: datetime
    ) -> Optional[VerificationCode]:
        """
        Atomically increment `attempts` if the record is still unexpired,
        unconsumed and below `max_attempts`. Return the updated record, or
        None if the record was no longer eligible at update time.
        """

    async def mark_consumed(self, code_id: str, now: datetime) -> bool:
        """
        Set `consumed_at` if still unset. False if another caller got there
        first.
        """
