from fastapi import HTTPException, status

from onboarding_resume.domain.results import SessionFailure, VerificationFailure

# Actionable, non-leaking messages. NotFound never reaches the client for
# verification: the orchestrator folds it into CodeMismatch.
_VERIFICATION = {
    VerificationFailure.CODE_MISMATCH: (
        status.HTTP_401_UNAUTHORIZED,
        "The code is incorrect.",
    ),
    VerificationFailure.EXPIRED: (
        status.HTTP_410_GONE,
        "The code has expired. Request a new one.",
    ),
    VerificationFailure.ATTEMPTS_EXHAUSTED: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many attempts. Request a new code.",
    ),
}

_SESSION = {
    SessionFailure.NOT_FOUND: (
        status.HTTP_401_UNAUTHORIZED,
        "Session not found. Resume your application to continue.",
    ),
    SessionFailure.REVOKED: (
        status.HTTP_401_UNAUTHORIZED,
        "Session ended. Resume your application to continue.",
    ),
    SessionFailure.EXPIRED: (
        status.HTTP_401_UNAUTHORIZED,
        "Session expired. Resume your application to continue.",
    ),
    SessionFailure.TRACKER_MISMATCH: (
        status.HTTP_403_FORBIDDEN,
        "This session does not grant access to that application.",
    ),
    SessionFailure.TRACKER_CLOSED: (
        status.HTTP_401_UNAUTHORIZED,
        "This application can no longer be resumed.",
    ),
}


def verification_http_error(failure: VerificationFailure) -> HTTPException:
    if failure not in _VERIFICATION:
        failure = VerificationFailure.CODE_MISMATCH
    code, message = _VERIFICATION[failure]
    return HTTPException(status_code=code, detail={"error": failure.value, "message": message})


def session_http_error(failure: SessionFailure) -> HTTPException:
    code, message = _SESSION[failure]
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(
        status_code=code,
        detail={"error": failure.value, "message": message},
        headers=headers,
    )
