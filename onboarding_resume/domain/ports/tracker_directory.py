from __future__ import annotations

from typing import Optional, Protocol

from onboarding_resume.domain.entities import Tracker


class TrackerDirectoryPort(Protocol):
    async def find_by_identity(self, sin_hash: str, email_hash: str) -> Optional[Tracker]:
        """
        Return the non-terminated tracker matching the hashed identity tuple,
        or None.
        """

    async def get(self, tracker_id: str) -> Optional[Tracker]:
        """Fetch a tracker by id (terminated ones included)."""
