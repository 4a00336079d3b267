from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import onboarding_resume.domain.services as domain_services
from onboarding_resume.application.retry import run_with_conflict_retry
from onboarding_resume.domain.entities import IssuedSession, Session, TrackerContext
from onboarding_resume.domain.errors import InfrastructureError
from onboarding_resume.domain.policies import SessionPolicy
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.domain.results import SessionFailure, SessionResult

logger = logging.getLogger(__name__)


# Transaction-level primitives: `tx` is an entered unit of work and the
# caller decides when to commit.


async def issue_session(
    tx: UnitOfWorkPort,
    tracker_id: str,
    *,
    policy: SessionPolicy,
    now: datetime,
) -> IssuedSession:
    """
    Mint a session for the tracker and revoke every other one it holds.

    Issuers for the same tracker are serialized by a transaction-scoped lock;
    the new row is written first and the others are revoked afterwards, so
    an overlap can only revoke too much, never leave two sessions active.
    """
    await tx.sessions.lock_tracker(tracker_id)
    token = domain_services.generate_session_token()
    session = await tx.sessions.add(
        Session(
            tracker_id=tracker_id,
            token_hash=domain_services.digest_session_token(token),
            expires_at=now + policy.sliding_window,
            last_used_at=now,
        )
    )
    superseded = await tx.sessions.revoke_for_tracker(
        tracker_id, now, "superseded", keep_session_id=session.id
    )
    logger.info(
        "session issued",
        extra={
            "tracker_id": tracker_id,
            "session_id": session.id,
            "superseded": superseded,
        },
    )
    return IssuedSession(token=token, tracker_id=tracker_id, expires_at=session.expires_at)


async def validate_session(
    tx: UnitOfWorkPort,
    token: str,
    *,
    policy: SessionPolicy,
    now: datetime,
) -> SessionResult:
    if not token:
        return SessionResult.fail(SessionFailure.NOT_FOUND)

    token_hash = domain_services.digest_session_token(token)
    touched = await tx.sessions.touch(token_hash, now, now + policy.sliding_window)
    if touched is not None:
        return SessionResult.success(touched.tracker_id, touched.expires_at)

    current = await tx.sessions.get_by_token_hash(token_hash)
    if current is None:
        return SessionResult.fail(SessionFailure.NOT_FOUND)
    if current.revoked:
        return SessionResult.fail(SessionFailure.REVOKED)
    return SessionResult.fail(SessionFailure.EXPIRED)


async def revoke_session(
    tx: UnitOfWorkPort, token: str, *, now: datetime, reason: str = "logout"
) -> None:
    if not token:
        return
    await tx.sessions.revoke(domain_services.digest_session_token(token), now, reason)


async def revoke_tracker_sessions(
    tx: UnitOfWorkPort, tracker_id: str, *, now: datetime, reason: str
) -> int:
    count = await tx.sessions.revoke_for_tracker(tracker_id, now, reason)
    if count:
        logger.info(
            "tracker sessions revoked",
            extra={"tracker_id": tracker_id, "count": count, "reason": reason},
        )
    return count


# Unit-of-work level entry points used by the presentation layer and by
# collaborating subsystems.


async def authorize_access(
    uow: UnitOfWorkPort,
    token: str,
    *,
    tracker_id: str | None = None,
    policy: SessionPolicy,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> SessionResult:
    """
    Validate (and slide) a session, then make sure it may touch `tracker_id`.

    A session bound to another tracker is refused and is not extended.
    Sessions of trackers that were completed, terminated or whose resume
    window closed are revoked on sight.
    """
    now = clock()

    async def _run() -> SessionResult:
        owner = tracker_id
        try:
            async with uow as tx:
                result = await validate_session(tx, token, policy=policy, now=now)
                if not result.ok:
                    return result
                owner = result.tracker_id

                if tracker_id is not None and result.tracker_id != tracker_id:
                    logger.warning(
                        "session presented for another tracker",
                        extra={
                            "tracker_id": result.tracker_id,
                            "requested_tracker_id": tracker_id,
                        },
                    )
                    await tx.rollback()
                    return SessionResult.fail(SessionFailure.TRACKER_MISMATCH)

                tracker = await tx.trackers.get(result.tracker_id)
                if tracker is None or tracker.completed or not tracker.is_resumable(now):
                    await revoke_tracker_sessions(
                        tx, result.tracker_id, now=now, reason="tracker_closed"
                    )
                    await tx.commit()
                    return SessionResult.fail(SessionFailure.TRACKER_CLOSED)

                await tx.commit()
                return SessionResult(
                    tracker_id=result.tracker_id,
                    expires_at=result.expires_at,
                    context=TrackerContext.of(tracker),
                )
        except InfrastructureError as exc:
            raise exc.bind(owner)

    return await run_with_conflict_retry(_run, retries=policy.conflict_retries)


async def end_session(
    uow: UnitOfWorkPort,
    token: str,
    *,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> None:
    async with uow as tx:
        await revoke_session(tx, token, now=clock())
        await tx.commit()


async def end_tracker_sessions(
    uow: UnitOfWorkPort,
    tracker_id: str,
    *,
    reason: str,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> int:
    """Cascade revocation for application completion or tracker termination."""
    try:
        async with uow as tx:
            count = await revoke_tracker_sessions(tx, tracker_id, now=clock(), reason=reason)
            await tx.commit()
    except InfrastructureError as exc:
        raise exc.bind(tracker_id)
    return count
