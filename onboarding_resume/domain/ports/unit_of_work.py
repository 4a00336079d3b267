from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Protocol, Type

from onboarding_resume.domain.ports.session_repository import SessionRepositoryPort
from onboarding_resume.domain.ports.tracker_directory import TrackerDirectoryPort
from onboarding_resume.domain.ports.verification_code_repository import (
    VerificationCodeRepositoryPort,
)


@dataclass
class UnitOfWorkPort(Protocol):
    """
    Transaction boundary.

    Usage:
        async with uow as tx:
            latest = await tx.codes.get_latest(sin_hash, email_hash, Purpose.RESUME)
            await tx.codes.consume_attempt(latest.id, now)
            await tx.commit()

    A unit of work may be entered again after it exits; each entry is a
    fresh transaction.
    """

    codes: VerificationCodeRepositoryPort
    sessions: SessionRepositoryPort
    trackers: TrackerDirectoryPort

    async def __aenter__(self) -> "UnitOfWorkPort":
        """Begin a new transaction."""

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Roll back unless committed, then release the connection."""

    async def commit(self) -> None:
        """Commit the transaction."""

    async def rollback(self) -> None:
        """Rollback the transaction."""
