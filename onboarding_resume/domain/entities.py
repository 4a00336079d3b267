from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Purpose(str, Enum):
    RESUME = "resume"


class SecretKind(str, Enum):
    SIN = "sin"
    EMAIL = "email"
    CODE = "code"


class ResumeStage(str, Enum):
    """Where a resume attempt stands from the applicant's point of view."""

    START = "start"
    CODE_REQUESTED = "code_requested"
    CODE_VERIFIED = "code_verified"
    SESSION_ACTIVE = "session_active"
    LOCKED = "locked"


@dataclass
class Tracker:
    """Read-only view of an onboarding tracker owned by another subsystem."""

    id: str
    sin_hash: str
    email_hash: str
    company_id: str
    current_step: str
    resume_expires_at: datetime
    completed: bool = False
    terminated: bool = False

    def is_resumable(self, now: datetime) -> bool:
        if self.terminated:
            return False
        return now <= self.resume_expires_at


@dataclass(frozen=True)
class TrackerContext:
    id: str
    company_id: str
    current_step: str
    completed: bool

    @classmethod
    def of(cls, tracker: Tracker) -> "TrackerContext":
        return cls(
            id=tracker.id,
            company_id=tracker.company_id,
            current_step=tracker.current_step,
            completed=tracker.completed,
        )


@dataclass
class VerificationCode:
    tracker_id: str
    sin_hash: str
    email_hash: str
    code_hash: str
    expires_at: datetime
    max_attempts: int
    purpose: Purpose = Purpose.RESUME
    attempts: int = 0
    id: str | None = None
    consumed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    @property
    def attempts_left(self) -> int:
        return max(0, self.max_attempts - self.attempts)


@dataclass
class Session:
    tracker_id: str
    token_hash: str
    expires_at: datetime
    last_used_at: datetime
    revoked: bool = False
    id: str | None = None
    revoked_at: datetime | None = None
    revoke_reason: str | None = None
    created_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and now < self.expires_at


@dataclass(frozen=True)
class IssuedSession:
    """A freshly minted session. `token` is the only copy of the secret."""

    token: str
    tracker_id: str
    expires_at: datetime
