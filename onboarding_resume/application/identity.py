from __future__ import annotations

from dataclasses import dataclass

from anyio.to_thread import run_sync

from onboarding_resume.domain.entities import SecretKind
from onboarding_resume.domain.ports.secret_hasher import SecretHasherPort

# Hashing is CPU-bound: it runs on a worker thread, never on the event loop.


async def hash_secret(hasher: SecretHasherPort, secret: str, kind: SecretKind) -> str:
    return await run_sync(hasher.hash, secret, kind)


@dataclass(frozen=True)
class HashedIdentity:
    """Digests of the applicant's shared secret (SIN + email)."""

    sin_hash: str
    email_hash: str

    @classmethod
    def compute(cls, hasher: SecretHasherPort, sin: str, email: str) -> "HashedIdentity":
        return cls(
            sin_hash=hasher.hash(sin, SecretKind.SIN),
            email_hash=hasher.hash(email, SecretKind.EMAIL),
        )

    @classmethod
    async def derive(cls, hasher: SecretHasherPort, sin: str, email: str) -> "HashedIdentity":
        return await run_sync(cls.compute, hasher, sin, email)
