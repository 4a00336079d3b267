from datetime import timedelta

import pytest

from onboarding_resume.domain.entities import SecretKind, Tracker
from onboarding_resume.domain.policies import SessionPolicy, VerificationPolicy
from onboarding_resume.infrastructure.security.secret_hasher import Pbkdf2SecretHasher
from tests.fakes import (
    CODE,
    EMAIL,
    SIN,
    FakeCodeSender,
    FakeThrottle,
    FakeUoW,
    FrozenClock,
    InMemoryStore,
)


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def hasher():
    # one iteration keeps the suite fast; the algorithm is the same
    return Pbkdf2SecretHasher("test-pepper", iterations=1)


@pytest.fixture()
def store():
    return InMemoryStore()


@pytest.fixture()
def uow(store):
    return FakeUoW(store)


@pytest.fixture()
def throttle(clock):
    return FakeThrottle(allow=True, clock=clock)


@pytest.fixture()
def sender():
    return FakeCodeSender()


@pytest.fixture()
def verification_policy():
    return VerificationPolicy(
        code_length=6,
        ttl=timedelta(minutes=15),
        max_attempts=5,
        resend_throttle=timedelta(seconds=60),
    )


@pytest.fixture()
def session_policy():
    return SessionPolicy(sliding_window=timedelta(minutes=30), conflict_retries=3)


@pytest.fixture()
def make_tracker(store, hasher, clock):
    def _make(
        tracker_id: str = "trk-1",
        *,
        sin: str = SIN,
        email: str = EMAIL,
        completed: bool = False,
        terminated: bool = False,
        resume_window: timedelta = timedelta(days=30),
    ) -> Tracker:
        return store.trackers.put(
            Tracker(
                id=tracker_id,
                sin_hash=hasher.hash(sin, SecretKind.SIN),
                email_hash=hasher.hash(email, SecretKind.EMAIL),
                company_id="acme-freight",
                current_step="driving_history",
                resume_expires_at=clock() + resume_window,
                completed=completed,
                terminated=terminated,
            )
        )

    return _make


@pytest.fixture()
def tracker(make_tracker):
    return make_tracker()


@pytest.fixture(autouse=True)
def patch_code(monkeypatch):
    """
    Make the numeric code deterministic in all tests.
    Override in a specific test by re-monkeypatching.
    """
    from onboarding_resume.domain import services as domain_services

    monkeypatch.setattr(domain_services, "generate_numeric_code", lambda length=6: CODE)
    yield
