from typing import Annotated

from fastapi import APIRouter, Depends

from onboarding_resume.domain.results import SessionResult
from onboarding_resume.presentation.security import require_tracker_session
from onboarding_resume.schemas.responses import TrackerContextOut

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])


@router.get("/{tracker_id}/context", response_model=TrackerContextOut)
async def get_onboarding_context(
    session: Annotated[SessionResult, Depends(require_tracker_session)],
):
    """
    Reference consumer of the session contract: form-page endpoints guard
    themselves with `require_tracker_session` the same way.
    """
    return TrackerContextOut.of(session.context)
