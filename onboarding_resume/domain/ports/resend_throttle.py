from typing import Protocol


class ResendThrottlePort(Protocol):
    async def acquire(self, key: str, window_seconds: int) -> bool:
        """
        Claim the send slot for `key` for `window_seconds`.
        False if the slot is already taken (a code was sent recently).
        """

    async def release(self, key: str) -> None:
        """Give the slot back early, e.g. when no code ended up being stored."""
