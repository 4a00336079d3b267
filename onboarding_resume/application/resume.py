from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import onboarding_resume.domain.services as domain_services
from onboarding_resume.application.identity import HashedIdentity, hash_secret
from onboarding_resume.application.retry import run_with_conflict_retry
from onboarding_resume.application.sessions import issue_session, revoke_tracker_sessions
from onboarding_resume.application.verification import (
    check_verification_code,
    issue_verification_code,
)
from onboarding_resume.domain.entities import (
    IssuedSession,
    Purpose,
    ResumeStage,
    SecretKind,
    TrackerContext,
)
from onboarding_resume.domain.errors import DomainError, InfrastructureError
from onboarding_resume.domain.policies import SessionPolicy, VerificationPolicy
from onboarding_resume.domain.ports.code_sender import CodeSenderPort
from onboarding_resume.domain.ports.resend_throttle import ResendThrottlePort
from onboarding_resume.domain.ports.secret_hasher import SecretHasherPort
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.domain.results import VerificationFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeDelivery:
    """Plaintext code on its way to the applicant. Lives in memory only."""

    tracker_id: str
    code_id: str
    expires_in_minutes: int
    to: str = field(repr=False)
    code: str = field(repr=False)


@dataclass(frozen=True)
class ResumeRequestOutcome:
    # Never sent to the client. The response is the same for every
    # identity because the work runs after it.
    accepted: bool = True
    stage: ResumeStage = ResumeStage.START
    delivery: CodeDelivery | None = field(default=None, repr=False)


@dataclass(frozen=True)
class ResumeConfirmation:
    stage: ResumeStage
    failure: VerificationFailure | None = None
    session: IssuedSession | None = field(default=None, repr=False)
    context: TrackerContext | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


async def request_resume(
    uow: UnitOfWorkPort,
    hasher: SecretHasherPort,
    throttle: ResendThrottlePort,
    sin: str,
    email: str,
    *,
    policy: VerificationPolicy,
    purpose: Purpose = Purpose.RESUME,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> ResumeRequestOutcome:
    now = clock()
    identity = await HashedIdentity.derive(hasher, sin, email)

    async with uow as tx:
        tracker = await tx.trackers.find_by_identity(identity.sin_hash, identity.email_hash)

    if tracker is None or not tracker.is_resumable(now):
        # burn the same hashing work a real issuance would
        await hash_secret(
            hasher, domain_services.generate_numeric_code(policy.code_length), SecretKind.CODE
        )
        logger.info("resume requested without a resumable tracker")
        return ResumeRequestOutcome()

    slot = f"{purpose.value}:{tracker.id}"
    window = int(policy.resend_throttle.total_seconds())
    try:
        acquired = await throttle.acquire(slot, window)
    except InfrastructureError as exc:
        raise exc.bind(tracker.id)
    if not acquired:
        logger.info("resume code resend throttled", extra={"tracker_id": tracker.id})
        return ResumeRequestOutcome()

    try:
        async with uow as tx:
            record, plaintext = await issue_verification_code(
                tx, hasher, tracker.id, identity, purpose=purpose, policy=policy, now=now
            )
            await tx.commit()
    except Exception as exc:
        # no code was stored, so the slot must not block the next request
        await _release_slot(throttle, slot, tracker.id)
        if isinstance(exc, InfrastructureError):
            exc.bind(tracker.id)
        raise

    return ResumeRequestOutcome(
        stage=ResumeStage.CODE_REQUESTED,
        delivery=CodeDelivery(
            tracker_id=tracker.id,
            code_id=record.id,
            expires_in_minutes=int(policy.ttl.total_seconds() // 60),
            to=email.strip(),
            code=plaintext,
        ),
    )


async def _release_slot(throttle: ResendThrottlePort, slot: str, tracker_id: str) -> None:
    try:
        await throttle.release(slot)
    except InfrastructureError:
        logger.warning(
            "resend slot could not be released", extra={"tracker_id": tracker_id}, exc_info=True
        )


async def process_resume_request(
    uow: UnitOfWorkPort,
    hasher: SecretHasherPort,
    throttle: ResendThrottlePort,
    sender: CodeSenderPort,
    sin: str,
    email: str,
    *,
    policy: VerificationPolicy,
    purpose: Purpose = Purpose.RESUME,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> ResumeRequestOutcome:
    """
    Everything a resume request does, run after the 202 has been sent.

    Failures are logged here and never reach the client, whose response was
    the same for every identity.
    """
    try:
        outcome = await request_resume(
            uow, hasher, throttle, sin, email, policy=policy, purpose=purpose, clock=clock
        )
    except DomainError as exc:
        logger.warning(
            "resume request could not be fulfilled",
            extra={"tracker_id": getattr(exc, "tracker_id", None)},
            exc_info=True,
        )
        return ResumeRequestOutcome()

    if outcome.delivery is not None:
        await deliver_code(sender, outcome.delivery)
    return outcome


async def deliver_code(sender: CodeSenderPort, delivery: CodeDelivery) -> bool:
    """Best-effort delivery; a failure is logged as a warning and swallowed."""
    log_extra = {
        "tracker_id": delivery.tracker_id,
        "code_id": delivery.code_id,
        "masked_email": domain_services.mask_email(delivery.to),
    }
    try:
        await sender.send_code(
            to=delivery.to,
            code=delivery.code,
            expires_in_minutes=delivery.expires_in_minutes,
            idempotency_key=f"resume-code:{delivery.code_id}",
        )
    except Exception:  # noqa: BLE001
        logger.warning("verification code delivery failed", extra=log_extra, exc_info=True)
        return False
    logger.info("verification code sent", extra=log_extra)
    return True


async def confirm_resume(
    uow: UnitOfWorkPort,
    hasher: SecretHasherPort,
    sin: str,
    email: str,
    code: str,
    *,
    policy: SessionPolicy,
    purpose: Purpose = Purpose.RESUME,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> ResumeConfirmation:
    now = clock()

    # The spent attempt is committed on its own so it survives whatever
    # happens while opening the session.
    async with uow as tx:
        result = await check_verification_code(
            tx, hasher, sin, email, code, purpose=purpose, now=now
        )
        await tx.commit()

    if not result.ok:
        failure = result.failure
        if failure is VerificationFailure.NOT_FOUND:
            # an unknown identity must look exactly like a wrong code
            failure = VerificationFailure.CODE_MISMATCH
        stage = (
            ResumeStage.LOCKED
            if failure is VerificationFailure.ATTEMPTS_EXHAUSTED
            else ResumeStage.START
        )
        return ResumeConfirmation(stage=stage, failure=failure)

    tracker_id = result.tracker_id

    async def _open_session() -> ResumeConfirmation:
        try:
            async with uow as tx:
                tracker = await tx.trackers.get(tracker_id)
                if tracker is None or not tracker.is_resumable(now):
                    logger.info(
                        "verified tracker no longer resumable", extra={"tracker_id": tracker_id}
                    )
                    return ResumeConfirmation(
                        stage=ResumeStage.START, failure=VerificationFailure.EXPIRED
                    )

                context = TrackerContext.of(tracker)
                if tracker.completed:
                    await revoke_tracker_sessions(tx, tracker.id, now=now, reason="completed")
                    await tx.commit()
                    return ResumeConfirmation(stage=ResumeStage.CODE_VERIFIED, context=context)

                issued = await issue_session(tx, tracker.id, policy=policy, now=now)
                await tx.commit()
        except InfrastructureError as exc:
            raise exc.bind(tracker_id)
        return ResumeConfirmation(stage=ResumeStage.SESSION_ACTIVE, session=issued, context=context)

    return await run_with_conflict_retry(
        _open_session, retries=policy.conflict_retries, tracker_id=tracker_id
    )
