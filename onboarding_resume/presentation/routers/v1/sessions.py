from datetime import datetime
from typing import Annotated, Callable

from fastapi import APIRouter, Depends

from onboarding_resume.application.sessions import end_session
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.domain.results import SessionResult
from onboarding_resume.presentation.dependencies import get_clock, get_uow
from onboarding_resume.presentation.security import require_session
from onboarding_resume.schemas.requests import SessionRevokeIn
from onboarding_resume.schemas.responses import RevokedOut, SessionOut, TrackerContextOut

router = APIRouter(prefix="/session", tags=["Session"])


@router.get("", response_model=SessionOut)
async def get_session(
    session: Annotated[SessionResult, Depends(require_session)],
):
    return SessionOut(
        tracker_id=session.tracker_id,
        expires_at=session.expires_at,
        onboarding_context=(
            TrackerContextOut.of(session.context) if session.context else None
        ),
    )


@router.post("/revoke", response_model=RevokedOut)
async def post_revoke_session(
    body: SessionRevokeIn,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
):
    # Always succeeds: unknown, expired and already revoked tokens alike.
    await end_session(uow, body.session_token, clock=clock)
    return RevokedOut()
