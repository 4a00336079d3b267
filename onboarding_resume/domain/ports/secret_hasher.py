from typing import Protocol

from onboarding_resume.domain.entities import SecretKind


class SecretHasherPort(Protocol):
    def hash(self, secret: str, kind: SecretKind) -> str:
        """
        Deterministic one-way digest of a normalized secret.
        Equal inputs (after normalization) always give equal digests.
        """
