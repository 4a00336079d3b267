from datetime import datetime
from typing import Annotated, Callable

from fastapi import APIRouter, BackgroundTasks, Depends, status

from onboarding_resume.application.resume import (
    confirm_resume,
    process_resume_request,
)
from onboarding_resume.domain.policies import SessionPolicy, VerificationPolicy
from onboarding_resume.domain.ports.code_sender import CodeSenderPort
from onboarding_resume.domain.ports.resend_throttle import ResendThrottlePort
from onboarding_resume.domain.ports.secret_hasher import SecretHasherPort
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.presentation.dependencies import (
    get_clock,
    get_code_sender,
    get_hasher,
    get_resend_throttle,
    get_session_policy,
    get_uow,
    get_verification_policy,
)
from onboarding_resume.presentation.failures import verification_http_error
from onboarding_resume.schemas.requests import ResumeConfirmIn, ResumeRequestIn
from onboarding_resume.schemas.responses import (
    AcceptedOut,
    ErrorOut,
    ResumeConfirmedOut,
    TrackerContextOut,
)

router = APIRouter(prefix="/resume", tags=["Resume"])


@router.post(
    "/request",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AcceptedOut,
)
async def post_request_resume(
    body: ResumeRequestIn,
    background_tasks: BackgroundTasks,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    hasher: Annotated[SecretHasherPort, Depends(get_hasher)],
    throttle: Annotated[ResendThrottlePort, Depends(get_resend_throttle)],
    sender: Annotated[CodeSenderPort, Depends(get_code_sender)],
    policy: Annotated[VerificationPolicy, Depends(get_verification_policy)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
):
    # All storage and delivery work runs after the response, so the reply
    # never depends on whether the identity exists.
    background_tasks.add_task(
        process_resume_request,
        uow,
        hasher,
        throttle,
        sender,
        body.sin,
        body.email,
        policy=policy,
        clock=clock,
    )
    return AcceptedOut()


@router.post(
    "/confirm",
    response_model=ResumeConfirmedOut,
    responses={401: {"model": ErrorOut}, 410: {"model": ErrorOut}, 429: {"model": ErrorOut}},
)
async def post_confirm_resume(
    body: ResumeConfirmIn,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    hasher: Annotated[SecretHasherPort, Depends(get_hasher)],
    policy: Annotated[SessionPolicy, Depends(get_session_policy)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
):
    confirmation = await confirm_resume(
        uow=uow,
        hasher=hasher,
        sin=body.sin,
        email=body.email,
        code=body.code,
        policy=policy,
        clock=clock,
    )
    if not confirmation.ok:
        raise verification_http_error(confirmation.failure)

    session = confirmation.session
    return ResumeConfirmedOut(
        stage=confirmation.stage.value,
        is_completed=session is None,
        session_token=session.token if session else None,
        expires_at=session.expires_at if session else None,
        onboarding_context=TrackerContextOut.of(confirmation.context),
    )
