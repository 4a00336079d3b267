from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class VerificationPolicy:
    code_length: int = 6
    ttl: timedelta = timedelta(minutes=15)
    max_attempts: int = 5
    resend_throttle: timedelta = timedelta(seconds=60)


@dataclass(frozen=True)
class SessionPolicy:
    sliding_window: timedelta = timedelta(minutes=30)
    # bound on retries of a unit of work that lost a concurrent-update race
    conflict_retries: int = 3
