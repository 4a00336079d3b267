import pytest
from fastapi.testclient import TestClient

from onboarding_resume.main import create_app
from onboarding_resume.presentation.dependencies import (
    get_clock,
    get_code_sender,
    get_hasher,
    get_resend_throttle,
    get_session_policy,
    get_uow,
    get_verification_policy,
)
from tests.fakes import EMAIL, SIN, FakeUoW


@pytest.fixture()
def app_and_deps(store, hasher, throttle, sender, clock, verification_policy, session_policy):
    app = create_app()

    # a fresh unit of work per request, all over the same store
    app.dependency_overrides[get_uow] = lambda: FakeUoW(store)
    app.dependency_overrides[get_hasher] = lambda: hasher
    app.dependency_overrides[get_resend_throttle] = lambda: throttle
    app.dependency_overrides[get_code_sender] = lambda: sender
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_verification_policy] = lambda: verification_policy
    app.dependency_overrides[get_session_policy] = lambda: session_policy

    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app_and_deps):
    # no context manager: the lifespan (real pool/redis) must not start
    return TestClient(app_and_deps, raise_server_exceptions=False)


def identity(**overrides) -> dict:
    body = {"sin": SIN, "email": EMAIL}
    body.update(overrides)
    return body


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
