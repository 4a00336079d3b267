from __future__ import annotations

from typing import Protocol


class CodeSenderPort(Protocol):
    async def send_code(
        self,
        *,
        to: str,
        code: str,
        expires_in_minutes: int,
        idempotency_key: str | None = None,
    ) -> None:
        """Deliver a plaintext verification code out of band."""
