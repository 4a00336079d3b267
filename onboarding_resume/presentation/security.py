from datetime import datetime
from typing import Annotated, Callable

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from onboarding_resume.application.sessions import authorize_access
from onboarding_resume.domain.policies import SessionPolicy
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.domain.results import SessionFailure, SessionResult
from onboarding_resume.presentation.dependencies import get_clock, get_session_policy, get_uow
from onboarding_resume.presentation.failures import session_http_error

# auto_error=False: a missing header is a NotFound session, not a bare 403.
bearer_scheme = HTTPBearer(auto_error=False)


def bearer_token(
    auth: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
) -> str:
    return auth.credentials if auth else ""


async def _authorize(
    token: str,
    tracker_id: str | None,
    uow: UnitOfWorkPort,
    policy: SessionPolicy,
    clock: Callable[[], datetime],
) -> SessionResult:
    if not token:
        raise session_http_error(SessionFailure.NOT_FOUND)
    result = await authorize_access(
        uow, token, tracker_id=tracker_id, policy=policy, clock=clock
    )
    if not result.ok:
        raise session_http_error(result.failure)
    return result


async def require_session(
    token: Annotated[str, Depends(bearer_token)],
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    policy: Annotated[SessionPolicy, Depends(get_session_policy)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
) -> SessionResult:
    """Any valid session; used by endpoints that are not tracker-scoped."""
    return await _authorize(token, None, uow, policy, clock)


async def require_tracker_session(
    tracker_id: str,
    token: Annotated[str, Depends(bearer_token)],
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    policy: Annotated[SessionPolicy, Depends(get_session_policy)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
) -> SessionResult:
    """Valid session bound to the `tracker_id` path parameter."""
    return await _authorize(token, tracker_id, uow, policy, clock)
