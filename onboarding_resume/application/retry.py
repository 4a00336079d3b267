from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from onboarding_resume.domain.errors import ConcurrencyConflict, InfrastructureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_with_conflict_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int = 3,
    tracker_id: str | None = None,
) -> T:
    """
    Run `operation` (a whole unit of work) and re-run it when it loses a
    concurrent-update race. After `retries` extra tries the conflict is
    surfaced as an InfrastructureError.
    """
    for attempt in range(retries + 1):
        try:
            return await operation()
        except ConcurrencyConflict:
            logger.warning(
                "concurrent update conflict",
                extra={"tracker_id": tracker_id, "attempt": attempt + 1},
            )
    raise InfrastructureError(
        f"gave up after {retries + 1} conflicting attempts", tracker_id=tracker_id
    )
