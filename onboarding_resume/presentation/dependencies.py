from datetime import datetime, timedelta
from functools import lru_cache
from typing import Callable

from fastapi import Request

from onboarding_resume.domain.policies import SessionPolicy, VerificationPolicy
from onboarding_resume.domain.ports.code_sender import CodeSenderPort
from onboarding_resume.domain.ports.resend_throttle import ResendThrottlePort
from onboarding_resume.domain.ports.secret_hasher import SecretHasherPort
from onboarding_resume.domain.ports.unit_of_work import UnitOfWorkPort
from onboarding_resume.domain.services import utcnow
from onboarding_resume.infrastructure.db.uow import PgUnitOfWork
from onboarding_resume.infrastructure.redis_cache.resend_throttle import RedisResendThrottle
from onboarding_resume.infrastructure.security.secret_hasher import Pbkdf2SecretHasher
from onboarding_resume.settings import get_settings

# Store handles (pool, redis, code sender) are built once in main.py
# lifespan() and read back from app.state here.


def get_uow(request: Request) -> UnitOfWorkPort:
    return PgUnitOfWork(request.app.state.pool)


def get_resend_throttle(request: Request) -> ResendThrottlePort:
    return RedisResendThrottle(request.app.state.redis)


def get_code_sender(request: Request) -> CodeSenderPort:
    return request.app.state.code_sender


@lru_cache(maxsize=1)
def _hasher() -> Pbkdf2SecretHasher:
    settings = get_settings()
    return Pbkdf2SecretHasher(settings.hash_pepper, iterations=settings.hash_iterations)


def get_hasher() -> SecretHasherPort:
    return _hasher()


def get_verification_policy() -> VerificationPolicy:
    settings = get_settings()
    return VerificationPolicy(
        code_length=settings.code_length,
        ttl=timedelta(seconds=settings.code_ttl_seconds),
        max_attempts=settings.code_max_attempts,
        resend_throttle=timedelta(seconds=settings.resend_throttle_seconds),
    )


def get_session_policy() -> SessionPolicy:
    settings = get_settings()
    return SessionPolicy(
        sliding_window=timedelta(seconds=settings.session_ttl_seconds),
        conflict_retries=settings.conflict_retries,
    )


def get_clock() -> Callable[[], datetime]:
    return utcnow
