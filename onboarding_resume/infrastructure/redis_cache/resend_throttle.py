from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from onboarding_resume.domain.errors import InfrastructureError
from onboarding_resume.domain.ports.resend_throttle import ResendThrottlePort


class RedisResendThrottle(ResendThrottlePort):
    """One send slot per key, held for the window via SET NX EX."""

    def __init__(self, redis: Redis, *, key_prefix: str = "resend:") -> None:
        self._redis = redis
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def acquire(self, key: str, window_seconds: int) -> bool:
        if window_seconds <= 0:
            return True
        try:
            claimed = await self._redis.set(self._key(key), "1", nx=True, ex=window_seconds)
        except RedisError as exc:
            raise InfrastructureError(f"redis error: {exc.__class__.__name__}") from exc
        return bool(claimed)

    async def release(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as exc:
            raise InfrastructureError(f"redis error: {exc.__class__.__name__}") from exc
