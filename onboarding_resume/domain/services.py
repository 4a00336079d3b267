# onboarding_resume/domain/services.py
from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from datetime import datetime, timezone

_NON_DIGITS_IN_SIN = re.compile(r"[\s-]")
_SIN_PATTERN = re.compile(r"^\d{9}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_numeric_code(length: int = 6) -> str:
    """Zero-padded numeric code of `length` digits."""
    return f"{secrets.randbelow(10**length):0{length}d}"


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def digest_session_token(token: str) -> str:
    """
    SHA256 of the session token, hex encoded.
    Tokens carry 256 bits of entropy, so no stretching is needed here.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def secure_compare(a: str, b: str) -> bool:
    """
    Constant-time comparison for secrets.
    Accepts strings; falls back to bytes if needed.
    """
    try:
        return hmac.compare_digest(a, b)
    except TypeError:
        return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def normalize_sin(sin: str) -> str:
    return _NON_DIGITS_IN_SIN.sub("", sin or "")


def is_valid_sin(sin: str) -> bool:
    return bool(_SIN_PATTERN.match(normalize_sin(sin)))


def normalize_email(email: str) -> str:
    return (email or "").strip().casefold()


def mask_email(email: str) -> str:
    """'robert@gmail.com' -> 'r*****@gmail.com'"""
    user, _, domain = normalize_email(email).partition("@")
    if not user or not domain:
        return "********"
    return f"{user[0]}{'*' * max(1, len(user) - 1)}@{domain}"
