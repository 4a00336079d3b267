from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from onboarding_resume.domain.entities import TrackerContext


class AcceptedOut(BaseModel):
    accepted: Literal[True] = True
    message: str = "If an application exists for these details, a code has been sent."


class TrackerContextOut(BaseModel):
    id: str
    company_id: str
    current_step: str
    completed: bool

    @classmethod
    def of(cls, context: TrackerContext) -> "TrackerContextOut":
        return cls(
            id=context.id,
            company_id=context.company_id,
            current_step=context.current_step,
            completed=context.completed,
        )


class ResumeConfirmedOut(BaseModel):
    stage: str
    is_completed: bool
    session_token: str | None = Field(None, description="Bearer token for later requests")
    expires_at: datetime | None = None
    onboarding_context: TrackerContextOut


class SessionOut(BaseModel):
    tracker_id: str
    expires_at: datetime
    onboarding_context: TrackerContextOut | None = None


class ErrorOut(BaseModel):
    error: str
    message: str


class RevokedOut(BaseModel):
    revoked: Literal[True] = True
