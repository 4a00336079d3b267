from __future__ import annotations

import logging
from datetime import datetime

import onboarding_resume.domain.services as domain_services
from onboarding_resume.application.identity import HashedIdentity, hash_secret
from onboarding_resume.domain.entities import Purpose, SecretKind, VerificationCode
from onboarding_resume.domain.errors import TrackerNotResumable
from onboarding_resume.domain.policies import VerificationPolicy
from onboarding_resume.domain.ports.secret_hasher import SecretHasherPort
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.domain.results import VerificationFailure, VerificationResult

logger = logging.getLogger(__name__)

# Identity columns start at 1, so no record ever carries this id.
UNMATCHED_CODE_ID = "0"


async def issue_verification_code(
    tx: UnitOfWorkPort,
    hasher: SecretHasherPort,
    tracker_id: str,
    identity: HashedIdentity,
    *,
    purpose: Purpose = Purpose.RESUME,
    policy: VerificationPolicy,
    now: datetime,
) -> tuple[VerificationCode, str]:
    """
    Persist a fresh code for the tracker and return (record, plaintext code).

    `tx` is an entered unit of work; the caller commits. Older records for
    the same tracker and purpose stay in place and are simply no longer the
    latest one.
    """
    tracker = await tx.trackers.get(tracker_id)
    if tracker is None or not tracker.is_resumable(now):
        raise TrackerNotResumable(tracker_id)

    plaintext = domain_services.generate_numeric_code(policy.code_length)
    record = await tx.codes.add(
        VerificationCode(
            tracker_id=tracker.id,
            sin_hash=identity.sin_hash,
            email_hash=identity.email_hash,
            code_hash=await hash_secret(hasher, plaintext, SecretKind.CODE),
            purpose=purpose,
            expires_at=now + policy.ttl,
            max_attempts=policy.max_attempts,
            attempts=0,
        )
    )
    logger.info(
        "verification code issued",
        extra={
            "tracker_id": tracker.id,
            "code_id": record.id,
            "purpose": purpose.value,
            "expires_at": record.expires_at.isoformat(),
        },
    )
    return record, plaintext


def _classify_dead_record(record: VerificationCode | None, now: datetime) -> VerificationFailure:
    if record is None:
        return VerificationFailure.NOT_FOUND
    if record.consumed_at is not None or record.is_expired(now):
        return VerificationFailure.EXPIRED
    return VerificationFailure.ATTEMPTS_EXHAUSTED


async def check_verification_code(
    tx: UnitOfWorkPort,
    hasher: SecretHasherPort,
    sin: str,
    email: str,
    submitted_code: str,
    *,
    purpose: Purpose = Purpose.RESUME,
    now: datetime,
) -> VerificationResult:
    # All three digests are computed up front so every outcome costs the same.
    identity = await HashedIdentity.derive(hasher, sin, email)
    submitted_hash = await hash_secret(hasher, submitted_code, SecretKind.CODE)

    latest = await tx.codes.get_latest(identity.sin_hash, identity.email_hash, purpose)
    if latest is None:
        # same round trips as a wrong code: the update matches no row
        await tx.codes.consume_attempt(UNMATCHED_CODE_ID, now)
        return VerificationResult.fail(VerificationFailure.NOT_FOUND)

    if latest.consumed_at is not None or latest.is_expired(now):
        return VerificationResult.fail(VerificationFailure.EXPIRED)

    if latest.is_exhausted():
        return VerificationResult.fail(VerificationFailure.ATTEMPTS_EXHAUSTED)

    # Every check past this point spends one attempt, right or wrong.
    slot = await tx.codes.consume_attempt(latest.id, now)
    if slot is None:
        # lost the last slot (or the record died) between read and update
        current = await tx.codes.get(latest.id)
        return VerificationResult.fail(_classify_dead_record(current, now))

    if not domain_services.secure_compare(slot.code_hash, submitted_hash):
        logger.info(
            "verification code mismatch",
            extra={"tracker_id": slot.tracker_id, "attempts": slot.attempts},
        )
        return VerificationResult.fail(
            VerificationFailure.CODE_MISMATCH, attempts_left=slot.attempts_left
        )

    if not await tx.codes.mark_consumed(slot.id, now):
        return VerificationResult.fail(VerificationFailure.EXPIRED)

    logger.info(
        "verification code accepted",
        extra={"tracker_id": slot.tracker_id, "attempts": slot.attempts},
    )
    return VerificationResult.success(slot.tracker_id)
