"""
Typed outcomes of verification and session checks.

Business failures are expected, user-recoverable results, so they are
returned to the caller instead of being raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from onboarding_resume.domain.entities import TrackerContext


class VerificationFailure(str, Enum):
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    ATTEMPTS_EXHAUSTED = "AttemptsExhausted"
    CODE_MISMATCH = "CodeMismatch"


class SessionFailure(str, Enum):
    NOT_FOUND = "NotFound"
    REVOKED = "Revoked"
    EXPIRED = "Expired"
    # raised by the access guard, not by validate()
    TRACKER_MISMATCH = "TrackerMismatch"
    TRACKER_CLOSED = "TrackerClosed"


@dataclass(frozen=True)
class VerificationResult:
    tracker_id: str | None = None
    failure: VerificationFailure | None = None
    attempts_left: int | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, tracker_id: str) -> "VerificationResult":
        return cls(tracker_id=tracker_id)

    @classmethod
    def fail(
        cls, failure: VerificationFailure, *, attempts_left: int | None = None
    ) -> "VerificationResult":
        return cls(failure=failure, attempts_left=attempts_left)


@dataclass(frozen=True)
class SessionResult:
    tracker_id: str | None = None
    expires_at: datetime | None = None
    failure: SessionFailure | None = None
    context: TrackerContext | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, tracker_id: str, expires_at: datetime) -> "SessionResult":
        return cls(tracker_id=tracker_id, expires_at=expires_at)

    @classmethod
    def fail(cls, failure: SessionFailure) -> "SessionResult":
        return cls(failure=failure)
