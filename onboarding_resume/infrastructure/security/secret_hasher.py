from __future__ import annotations

import hashlib
import hmac

from onboarding_resume.domain.entities import SecretKind
from onboarding_resume.domain.ports.secret_hasher import SecretHasherPort
from onboarding_resume.domain.services import normalize_email, normalize_sin


def normalize_secret(secret: str, kind: SecretKind) -> str:
    if kind is SecretKind.SIN:
        return normalize_sin(secret)
    if kind is SecretKind.EMAIL:
        return normalize_email(secret)
    return (secret or "").strip()


class Pbkdf2SecretHasher(SecretHasherPort):
    """
    PBKDF2-HMAC-SHA256 keyed by a server-side pepper.

    The salt is fixed per secret kind (derived from the pepper) so digests
    stay comparable and can be used as lookup keys, while the iteration
    count keeps offline guessing of low-entropy inputs expensive.
    """

    def __init__(self, pepper: str, *, iterations: int = 60_000) -> None:
        if not pepper:
            raise ValueError("hash pepper must not be empty")
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self._pepper = pepper.encode("utf-8")
        self._iterations = iterations
        self._salts = {
            kind: hmac.new(self._pepper, kind.value.encode("utf-8"), hashlib.sha256).digest()
            for kind in SecretKind
        }

    def hash(self, secret: str, kind: SecretKind) -> str:
        normalized = normalize_secret(secret, kind)
        digest = hashlib.pbkdf2_hmac(
            "sha256",
            normalized.encode("utf-8"),
            self._salts[kind],
            self._iterations,
        )
        return digest.hex()
